"""Local/remote reconciliation on session changes.

While anonymous, progress lives only in local storage. The first time the
learner signs in afterwards, every local record is replayed to the remote
store before the remote snapshot is fetched, so nothing recorded offline is
lost when the remote snapshot replaces local state.
"""

import asyncio
from typing import TYPE_CHECKING

from learntrail.core.logging import get_logger

from .cascade import CompletionCascade
from .models import ProgressState
from .remote import RemoteProgressClient, RemoteStoreError
from .store import ProgressStore


if TYPE_CHECKING:
    from learntrail.auth.session import SessionState

logger = get_logger(__name__)


class SyncReconciler:
    """Loads, merges and publishes progress at session initialization."""

    def __init__(
        self,
        store: ProgressStore,
        session: "SessionState",
        cascade: CompletionCascade,
        remote: RemoteProgressClient | None = None,
    ):
        self.store = store
        self.session = session
        self.cascade = cascade
        self.remote = remote
        self.was_anonymous = False

    async def on_auth_changed(self, authenticated: bool, page_id: str | None) -> None:
        if not authenticated:
            self.was_anonymous = True
        await self.initialize(page_id)

    async def initialize(self, page_id: str | None) -> None:
        """Publish the right snapshot for the current session, then start the page."""
        existing = self.store.load_local()

        if not self.session.is_authenticated:
            self.store.replace(existing)
            await self._start(page_id)
            return

        if self.was_anonymous:
            self.was_anonymous = False
            if not existing.is_empty():
                self.store.replace(existing)
                replays = [
                    self.store.update(learning_type, record_id, record.to_payload())
                    for learning_type, record_id, record in existing.entries()
                ]
                await asyncio.gather(*replays)
                logger.info("local_progress_replayed", records=len(replays))

        remote_state = await self._fetch_remote()
        if remote_state is None:
            self.store.replace(existing)
        else:
            self.store.replace(remote_state, persist=True)
            logger.info("remote_progress_loaded")

        await self._start(page_id)

    async def _fetch_remote(self) -> ProgressState | None:
        if self.remote is None:
            logger.warning("remote_progress_unconfigured")
            return None
        try:
            return await self.remote.fetch()
        except RemoteStoreError as e:
            logger.warning("remote_progress_fetch_failed", code=e.code, error=e.message)
            return None

    async def _start(self, page_id: str | None) -> None:
        if page_id:
            await self.cascade.start_page(page_id)
