"""Tests for the content tree accessor."""

import json

import pytest

from learntrail.catalog import CatalogError, ContentTree


class TestFromPayload:
    """Tests for catalog parsing."""

    def test_skips_container_roots(self, tree: ContentTree) -> None:
        """The modules and tracks sentinels are not nodes or tracks."""
        assert tree.node("modules") is None
        assert tree.track("tracks") is None

    def test_parses_node_fields(self, tree: ContentTree) -> None:
        node = tree.node("basics/setup")
        assert node is not None
        assert node.parent == "basics"
        assert node.children == ("basics/setup/linux", "basics/setup/windows")
        assert node.is_fork is True
        assert node.minutes == (2, 2)
        assert node.remaining is None

    def test_track_order_follows_tracks_root(self, tree: ContentTree) -> None:
        assert tree.track_ids() == ["track-y", "track-z", "track-empty"]

    def test_track_order_defaults_to_insertion(self) -> None:
        tree = ContentTree.from_payload(
            {"tracks": {"b": {"modules": ["m"]}, "a": {"modules": []}}}
        )
        assert tree.track_ids() == ["b", "a"]

    def test_invalid_entry_raises(self) -> None:
        with pytest.raises(CatalogError) as exc_info:
            ContentTree.from_payload({"modules": {"x": {"minutes": "lots"}}})
        assert exc_info.value.code == "invalid_entry"

    def test_from_file(self, tmp_path, catalog) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog), encoding="utf-8")
        tree = ContentTree.from_file(path)
        assert tree.node("unit-1") is not None
        assert tree.track_modules("track-z") == ["module-x", "untimed"]

    def test_from_missing_file(self, tmp_path) -> None:
        with pytest.raises(CatalogError) as exc_info:
            ContentTree.from_file(tmp_path / "nope.json")
        assert exc_info.value.code == "unreadable"


class TestTraversal:
    """Tests for parent and descendant walks."""

    def test_descendants_depth_first_in_child_order(self, tree: ContentTree) -> None:
        assert tree.descendants("basics") == [
            "basics/intro",
            "basics/setup",
            "basics/setup/linux",
            "basics/setup/windows",
        ]

    def test_descendants_of_leaf_and_unknown(self, tree: ContentTree) -> None:
        assert tree.descendants("unit-1") == []
        assert tree.descendants("missing") == []

    def test_ancestors_stop_before_sentinel(self, tree: ContentTree) -> None:
        ids = [node.id for node in tree.ancestors("basics/setup/linux")]
        assert ids == ["basics/setup", "basics"]

    def test_parent_of_module_root_is_none(self, tree: ContentTree) -> None:
        assert tree.parent("basics") is None
        assert tree.parent("basics/intro").id == "basics"

    def test_deep_chain_is_walked_without_recursion(self) -> None:
        depth = 5000
        modules = {"n0": {"parent": "modules", "children": ["n1"]}}
        for i in range(1, depth):
            modules[f"n{i}"] = {"parent": f"n{i - 1}", "children": [f"n{i + 1}"]}
        tree = ContentTree.from_payload({"modules": modules})

        assert len(tree.descendants("n0")) == depth
        assert len(list(tree.ancestors(f"n{depth - 1}"))) == depth - 1

    def test_cycles_do_not_loop(self) -> None:
        tree = ContentTree.from_payload(
            {
                "modules": {
                    "a": {"parent": "b", "children": ["b"]},
                    "b": {"parent": "a", "children": ["a"]},
                }
            }
        )
        assert tree.descendants("a") == ["b"]
        assert [node.id for node in tree.ancestors("a")] == ["b"]
