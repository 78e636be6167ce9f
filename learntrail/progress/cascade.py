"""Write path: page start/completion and upward completion cascade.

Completing a unit page can complete its module, which can complete tracks,
which can grant achievements. Each stage waits for the previous stage's
writes to settle before reading state again. Writes issued within a single
stage run concurrently with no ordering guarantee between them.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from learntrail.catalog import ContentTree
from learntrail.core.logging import get_logger

from .calculator import ProgressCalculator
from .models import (
    GRAND_OPENING,
    STANDARD_ACHIEVEMENT,
    LearningType,
    utc_now_iso,
)
from .store import ProgressStore


logger = get_logger(__name__)

Clock = Callable[[], str]


class CompletionCascade:
    """Applies page events and propagates completion upward."""

    def __init__(
        self,
        tree: ContentTree,
        store: ProgressStore,
        calculator: ProgressCalculator,
        clock: Clock = utc_now_iso,
    ):
        self.tree = tree
        self.store = store
        self.calculator = calculator
        self.clock = clock

    async def start_page(self, page_id: str) -> None:
        """Record that a page was opened.

        Module root pages are also tracked as their own unit page.
        """
        learning_type = self.calculator.classify(page_id)
        if learning_type is None:
            logger.debug("start_page_unclassified", page_id=page_id)
            return

        now = self.clock()
        writes = [self.store.update(learning_type, page_id, {"started_at": now})]
        if learning_type is LearningType.MODULES:
            writes.append(self.store.update(LearningType.UNITS, page_id, {"started_at": now}))
        await asyncio.gather(*writes)

    async def complete_page(self, page_id: str) -> None:
        """Complete a unit (or module root) page and run the cascade.

        Tracks and achievements are only ever completed through the cascade,
        so any other page type is ignored.
        """
        learning_type = self.calculator.classify(page_id)
        if learning_type not in (LearningType.UNITS, LearningType.MODULES):
            logger.debug("complete_page_ignored", page_id=page_id, learning_type=learning_type)
            return

        await self.store.update(LearningType.UNITS, page_id, {"completed_at": self.clock()})
        await self.complete_module(page_id)
        await self.complete_tracks()
        await self.award_achievements()
        logger.info("page_completed", page_id=page_id)

    async def complete_module(self, page_id: str) -> None:
        """Start the page's module, and complete it once progress reaches 100."""
        module_id = self.calculator.module_root(page_id)
        if module_id is None:
            return

        current = self.store.read(LearningType.MODULES, module_id)
        changes: dict[str, Any] = {}
        if not current.started_at:
            changes["started_at"] = self.clock()
        if not current.completed_at and self.calculator.module_progress(page_id) >= 100:
            changes["completed_at"] = self.clock()

        if changes:
            await self.store.update(LearningType.MODULES, module_id, changes)
            if "completed_at" in changes:
                logger.info("module_completed", module_id=module_id)

    async def complete_tracks(self) -> None:
        """Complete every track whose member modules are all completed."""
        writes = []
        for track_id in self.tree.track_ids():
            module_ids = self.tree.track_modules(track_id)
            if not module_ids:
                continue
            if not all(
                self.store.read(LearningType.MODULES, module_id).completed_at
                for module_id in module_ids
            ):
                continue

            current = self.store.read(LearningType.TRACKS, track_id)
            changes: dict[str, Any] = {}
            if not current.started_at:
                changes["started_at"] = self.clock()
            if not current.completed_at:
                changes["completed_at"] = self.clock()
            if changes:
                writes.append(self.store.update(LearningType.TRACKS, track_id, changes))
                logger.info("track_completed", track_id=track_id)

        await asyncio.gather(*writes)

    async def award_achievements(self) -> None:
        """Grant ``grand-opening`` and per-track achievements not yet recorded."""
        modules = self.store.read(LearningType.MODULES)
        tracks = self.store.read(LearningType.TRACKS)
        achievements = self.store.read(LearningType.ACHIEVEMENTS)

        earned: list[str] = []
        if GRAND_OPENING not in achievements and any(
            record.completed_at for record in modules.values()
        ):
            earned.append(GRAND_OPENING)

        for track_id, record in tracks.items():
            if record.completed_at and track_id not in achievements:
                earned.append(track_id)

        writes = [
            self.store.update(
                LearningType.ACHIEVEMENTS,
                achievement_id,
                {"achievement_type": STANDARD_ACHIEVEMENT, "earned_at": self.clock()},
            )
            for achievement_id in earned
        ]
        for achievement_id in earned:
            logger.info("achievement_awarded", achievement_id=achievement_id)
        await asyncio.gather(*writes)
