"""Learner progress service.

Caller-facing entry point that wires the engine together:
- Page start/completion with upward completion cascade
- Module progress estimation and last-accessed lookup
- Achievements, linear navigation and track membership
- Local/remote reconciliation whenever the session changes
"""

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

from learntrail.auth.session import SessionState
from learntrail.catalog import ContentTree
from learntrail.config.settings import Settings
from learntrail.core.context import RequestContext
from learntrail.core.logging import get_logger

from .calculator import ProgressCalculator
from .cascade import Clock, CompletionCascade
from .models import LearningRecord, LearningType, ProgressState, utc_now_iso
from .remote import RemoteProgressClient
from .storage import DEFAULT_STORAGE_KEY, FileStorage, KeyValueStorage
from .store import ProgressStore, StateListener
from .sync import SyncReconciler


logger = get_logger(__name__)


class ProgressService:
    """Tracks one learner's progress through a content catalog."""

    def __init__(
        self,
        tree: ContentTree,
        storage: KeyValueStorage,
        session: SessionState,
        remote: RemoteProgressClient | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        current_page_id: str | None = None,
        clock: Clock = utc_now_iso,
    ):
        self.tree = tree
        self.session = session
        self.remote = remote
        self.current_page_id = current_page_id

        self.store = ProgressStore(storage, session, remote, storage_key)
        self.calculator = ProgressCalculator(tree, self.store)
        self.cascade = CompletionCascade(tree, self.store, self.calculator, clock)
        self.reconciler = SyncReconciler(self.store, session, self.cascade, remote)

        self._pending: set[asyncio.Task[None]] = set()
        self._unsubscribe: Callable[[], None] | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: SessionState,
        current_page_id: str | None = None,
    ) -> "ProgressService":
        """Build a service backed by file storage and the configured remote store."""
        tree = ContentTree.from_file(settings.catalog_path)
        remote = RemoteProgressClient(
            settings.progress_url,
            session,
            timeout=settings.remote_timeout_seconds,
        )
        return cls(
            tree=tree,
            storage=FileStorage(Path(settings.storage_dir)),
            session=session,
            remote=remote,
            storage_key=settings.storage_key,
            current_page_id=current_page_id,
        )

    # ==========================================================================
    # Session lifecycle
    # ==========================================================================

    def init(self) -> None:
        """Follow the session; reconciles immediately and on every change.

        Must be called from a running event loop.
        """
        if self._unsubscribe is None:
            self._unsubscribe = self.session.subscribe(self._on_auth_changed)

    def _on_auth_changed(self, authenticated: bool) -> None:
        task = asyncio.get_running_loop().create_task(
            self.handle_auth_change(authenticated)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def handle_auth_change(self, authenticated: bool) -> None:
        """Reconcile local and remote progress for a new session state."""
        logger.info("progress_session_changed", authenticated=authenticated)
        with RequestContext(learner_id=self.session.learner_id, page_id=self.current_page_id):
            await self.reconciler.on_auth_changed(authenticated, self.current_page_id)

    async def drain(self) -> None:
        """Wait for reconciliations scheduled by session changes."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def aclose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.drain()
        if self.remote is not None:
            await self.remote.aclose()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Receive every published progress snapshot."""
        return self.store.subscribe(listener)

    @property
    def state(self) -> ProgressState:
        return self.store.snapshot()

    # ==========================================================================
    # Page events
    # ==========================================================================

    async def start_page(self, page_id: str) -> None:
        self.current_page_id = page_id
        with RequestContext(learner_id=self.session.learner_id, page_id=page_id):
            await self.cascade.start_page(page_id)

    async def complete_page(self, page_id: str) -> None:
        with RequestContext(learner_id=self.session.learner_id, page_id=page_id):
            await self.cascade.complete_page(page_id)

    # ==========================================================================
    # Queries
    # ==========================================================================

    def is_complete(self, learning_type: LearningType, page_id: str | None) -> bool:
        if not page_id:
            return False
        return bool(self.store.read(learning_type, page_id).completed_at)

    def get_last_accessed(
        self, learning_type: LearningType, page_id: str
    ) -> dict[str, Any] | None:
        """Most recently touched record under a page, tagged with its ``id``."""
        last = self.calculator.last_accessed(learning_type, page_id)
        return last.to_payload() if last else None

    def get_module_progress(self, page_id: str) -> int:
        return self.calculator.module_progress(page_id)

    def get_achievements(
        self, achievement_id: str | None = None
    ) -> dict[str, LearningRecord] | LearningRecord | None:
        """All achievements, or one achievement (None if not earned)."""
        achievements = self.store.read(LearningType.ACHIEVEMENTS)
        if achievement_id:
            return achievements.get(achievement_id)
        return achievements

    def get_next_page(self, page_id: str) -> str | None:
        return self.calculator.next_page(page_id)

    def get_tracks_by_module(self, module_id: str) -> list[str]:
        return self.calculator.tracks_by_module(module_id)
