"""Read-only content tree accessor.

The tree is built once from a catalog payload and then only queried. It is
passed explicitly to every component that needs catalog data.
"""

import json
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from learntrail.core.logging import get_logger

from .models import MODULES_ROOT, TRACKS_ROOT, ContentNode, Track


logger = get_logger(__name__)


class CatalogError(Exception):
    """Catalog payload could not be loaded."""

    def __init__(self, message: str, code: str = "catalog_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ContentTree:
    """Immutable view over the module tree and the track collection."""

    def __init__(
        self,
        nodes: Mapping[str, ContentNode],
        tracks: Mapping[str, Track] | None = None,
        track_order: list[str] | None = None,
    ):
        self._nodes = dict(nodes)
        self._tracks = dict(tracks or {})
        if track_order is None:
            track_order = list(self._tracks)
        self._track_order = [t for t in track_order if t in self._tracks]

    # ==========================================================================
    # Construction
    # ==========================================================================

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ContentTree":
        """Build a tree from a ``{"modules": {...}, "tracks": {...}}`` payload.

        Entries are keyed by identifier. The ``modules`` entry inside the
        modules map and the ``tracks`` entry inside the tracks map are the
        container roots; the latter's ``children`` define track order.

        Raises:
            CatalogError: If any entry does not describe a valid node or track
        """
        modules_data = payload.get("modules") or {}
        tracks_data = payload.get("tracks") or {}

        try:
            nodes = {
                node_id: ContentNode.model_validate({**data, "id": node_id})
                for node_id, data in modules_data.items()
                if node_id != MODULES_ROOT
            }
            tracks = {
                track_id: Track.model_validate(
                    {**data, "id": track_id, "modules": data.get("modules") or ()}
                )
                for track_id, data in tracks_data.items()
                if track_id != TRACKS_ROOT
            }
        except (ValidationError, TypeError) as e:
            raise CatalogError(f"Invalid catalog entry: {e}", "invalid_entry") from e

        track_order = None
        tracks_root = tracks_data.get(TRACKS_ROOT)
        if isinstance(tracks_root, Mapping) and tracks_root.get("children"):
            track_order = list(tracks_root["children"])

        logger.debug("catalog_loaded", nodes=len(nodes), tracks=len(tracks))
        return cls(nodes, tracks, track_order)

    @classmethod
    def from_file(cls, path: Path | str) -> "ContentTree":
        """Load a tree from a JSON catalog file."""
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Cannot read catalog {path}: {e}", "unreadable") from e
        if not isinstance(payload, dict):
            raise CatalogError("Catalog root must be an object", "invalid_root")
        return cls.from_payload(payload)

    # ==========================================================================
    # Module tree queries
    # ==========================================================================

    def node(self, node_id: str | None) -> ContentNode | None:
        """Return the node for an identifier, or None if unknown."""
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def parent(self, node_id: str) -> ContentNode | None:
        """Return the parent node, or None at the top of the tree."""
        node = self.node(node_id)
        if node is None or node.parent in (None, MODULES_ROOT):
            return None
        return self.node(node.parent)

    def ancestors(self, node_id: str) -> Iterator[ContentNode]:
        """Yield ancestors nearest first, stopping before the modules sentinel."""
        seen = {node_id}
        parent = self.parent(node_id)
        while parent is not None and parent.id not in seen:
            seen.add(parent.id)
            yield parent
            parent = self.parent(parent.id)

    def descendants(self, node_id: str) -> list[str]:
        """Depth-first descendants: each child followed by its own subtree."""
        root = self.node(node_id)
        if root is None:
            return []

        ids: list[str] = []
        seen = {node_id}
        stack = list(reversed(root.children))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            ids.append(current)
            child = self.node(current)
            if child is not None:
                stack.extend(reversed(child.children))
        return ids

    # ==========================================================================
    # Track queries
    # ==========================================================================

    def track(self, track_id: str) -> Track | None:
        """Return a track, or None if unknown."""
        return self._tracks.get(track_id)

    def track_ids(self) -> list[str]:
        """Track identifiers in catalog order."""
        return list(self._track_order)

    def track_modules(self, track_id: str) -> list[str]:
        """Member module identifiers of a track (empty if unknown)."""
        track = self._tracks.get(track_id)
        return list(track.modules) if track else []
