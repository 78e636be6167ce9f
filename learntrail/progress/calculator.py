"""Read-side progress derivations.

Classifies content identifiers, resolves module roots and active paths, and
estimates how far along a learner is in a module from catalog time estimates.
Nothing here writes state.
"""

import math

from learntrail.catalog import MODULES_ROOT, TRACKS_ROOT, ContentNode, ContentTree

from .models import AccessedRecord, LearningType
from .store import ProgressStore


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class ProgressCalculator:
    """Derives classification, paths and module progress."""

    def __init__(self, tree: ContentTree, store: ProgressStore):
        self.tree = tree
        self.store = store

    # ==========================================================================
    # Classification
    # ==========================================================================

    def classify(self, page_id: str | None) -> LearningType | None:
        """Learning type of a page identifier, or None when it has none."""
        if page_id is None or page_id in (MODULES_ROOT, TRACKS_ROOT):
            return None
        module_id = self.module_root(page_id)
        if module_id == page_id:
            return LearningType.MODULES
        if module_id:
            return LearningType.UNITS
        if self.tree.track(page_id):
            return LearningType.TRACKS
        return None

    def module_root(self, page_id: str) -> str | None:
        """Identifier of the module a page belongs to (itself for a module root)."""
        node = self.tree.node(page_id)
        if node is None:
            return None
        seen = {node.id}
        while node.parent and node.parent != MODULES_ROOT:
            parent = self.tree.node(node.parent)
            if parent is None or parent.id in seen:
                break
            seen.add(parent.id)
            node = parent
        return node.id

    # ==========================================================================
    # Paths
    # ==========================================================================

    def _child_root(self, node: ContentNode) -> ContentNode:
        """Parent of ``node`` unless it is a fork or the top of the tree."""
        parent = self.tree.parent(node.id)
        if parent is not None and not parent.is_fork:
            return parent
        return node

    def active_path_ids(self, active_id: str) -> list[str]:
        """Ancestors, the child root itself, then its descendants, in order."""
        node = self.tree.node(active_id)
        if node is None:
            return []
        child_root = self._child_root(node)
        ancestors = [ancestor.id for ancestor in self.tree.ancestors(child_root.id)]
        ids = [*reversed(ancestors), child_root.id, *self.tree.descendants(child_root.id)]
        return list(dict.fromkeys(ids))

    def last_accessed(
        self, learning_type: LearningType, page_id: str
    ) -> AccessedRecord | None:
        """Most recently touched record keyed ``page_id`` or ``page_id/<suffix>``."""
        records = self.store.read(learning_type, page_id, prefix=True)
        if not records:
            return None
        # max() keeps the first of equal keys
        latest_id = max(records, key=lambda key: records[key].touched_at)
        return AccessedRecord(latest_id, records[latest_id])

    # ==========================================================================
    # Module progress
    # ==========================================================================

    def module_progress(self, page_id: str) -> int:
        """Estimated completion percentage (0-100) of the module around a page.

        Time-weighted when the catalog has estimates for the active path,
        count-based otherwise.
        """
        page = self.tree.node(page_id)
        if page is None:
            return 0

        active_id = page_id
        if page.is_module_root:
            last = self.last_accessed(LearningType.UNITS, page_id)
            if last:
                active_id = last.id

        active = self.tree.node(active_id)
        if active is None:
            return 0

        path_ids = self.active_path_ids(active_id)
        child_root = self._child_root(active)

        low, high = child_root.remaining or (0, 0)
        for ancestor in self.tree.ancestors(child_root.id):
            if ancestor.minutes:
                low += ancestor.minutes[0]
                high += ancestor.minutes[1]
        base_time_avg = (low + high) / 2

        in_path = set(path_ids)
        completed_ids = [
            unit_id
            for unit_id, record in self.store.read(LearningType.UNITS).items()
            if record.completed_at and unit_id in in_path
        ]

        if base_time_avg > 0:
            completed_avg = 0.0
            for unit_id in completed_ids:
                node = self.tree.node(unit_id)
                if node is not None:
                    completed_avg += node.minutes_avg
            progress = _round_half_up(100 * completed_avg / base_time_avg)
        elif path_ids:
            progress = _round_half_up(100 * len(completed_ids) / len(path_ids))
        else:
            return 0

        return min(100, max(0, progress))

    # ==========================================================================
    # Navigation
    # ==========================================================================

    def next_page(self, page_id: str) -> str | None:
        """First child of a page, else its next sibling."""
        node = self.tree.node(page_id)
        if node is None:
            return None
        if node.children:
            return node.children[0]
        parent = self.tree.parent(page_id)
        if parent is None:
            return None
        siblings = list(parent.children)
        if page_id not in siblings:
            return None
        index = siblings.index(page_id) + 1
        return siblings[index] if index < len(siblings) else None

    def tracks_by_module(self, module_id: str) -> list[str]:
        """Tracks, in catalog order, that include a module."""
        return [
            track_id
            for track_id in self.tree.track_ids()
            if module_id in self.tree.track_modules(track_id)
        ]
