"""Progress state container.

Holds the in-memory snapshot, mirrors it to local storage on every write and
forwards changes to the remote store while the learner is signed in. The
in-memory snapshot is always updated before any remote request goes out, so
reads right after ``update`` see the new value.
"""

import asyncio
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from learntrail.core.logging import get_logger

from .models import LearningRecord, LearningType, ProgressState
from .remote import RemoteAuthError, RemoteProgressClient, RemoteStoreError
from .storage import DEFAULT_STORAGE_KEY, KeyValueStorage, load_snapshot, save_snapshot


if TYPE_CHECKING:
    from learntrail.auth.session import SessionState

logger = get_logger(__name__)

StateListener = Callable[[ProgressState], None]


class ProgressStore:
    """Single source of truth for a learner's progress."""

    def __init__(
        self,
        storage: KeyValueStorage,
        session: "SessionState",
        remote: RemoteProgressClient | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ):
        self._storage = storage
        self._session = session
        self._remote = remote
        self._storage_key = storage_key
        self._state = ProgressState()
        self._listeners: list[StateListener] = []

    # ==========================================================================
    # Snapshot management
    # ==========================================================================

    def snapshot(self) -> ProgressState:
        """Deep copy of the current state."""
        return self._state.model_copy(deep=True)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for published snapshots."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self) -> None:
        """Send the current snapshot to every listener."""
        for listener in list(self._listeners):
            listener(self.snapshot())

    def load_local(self) -> ProgressState:
        """Read the locally persisted snapshot (empty when missing or malformed)."""
        return load_snapshot(self._storage, self._storage_key)

    def persist(self) -> None:
        save_snapshot(self._storage, self._state, self._storage_key)

    def replace(self, state: ProgressState, *, persist: bool = False) -> None:
        """Swap in a whole snapshot and publish it."""
        self._state = state.model_copy(deep=True)
        if persist:
            self.persist()
        self.publish()

    # ==========================================================================
    # Reads
    # ==========================================================================

    def read(
        self,
        learning_type: LearningType | None = None,
        record_id: str | None = None,
        prefix: bool = False,
    ) -> Any:
        """Read state at the requested granularity.

        - no arguments: the full snapshot (a copy)
        - ``learning_type``: that type's mapping
        - ``record_id``: one record (an empty record when absent)
        - ``record_id`` with ``prefix``: every record keyed ``id`` or ``id/<suffix>``
        """
        if learning_type is None:
            return self.snapshot()

        bucket = self._state.bucket(learning_type)
        if record_id is None:
            return dict(bucket)
        if not prefix:
            return bucket.get(record_id) or LearningRecord()

        nested = f"{record_id}/"
        return {
            key: record
            for key, record in bucket.items()
            if key == record_id or (key.startswith(nested) and len(key) > len(nested))
        }

    # ==========================================================================
    # Writes
    # ==========================================================================

    def update(
        self,
        learning_type: LearningType,
        record_id: str,
        fields: Mapping[str, Any],
    ) -> "asyncio.Future[None]":
        """Merge ``fields`` into one record.

        The merge and the local persist happen before this returns. The
        returned future settles once the remote write (if any) has finished;
        it never raises for remote failures.
        """
        bucket = self._state.bucket(learning_type)
        record = (bucket.get(record_id) or LearningRecord()).merged(fields)
        bucket[record_id] = record
        self.persist()

        if not self._session.is_authenticated or self._remote is None:
            self.publish()
            done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            done.set_result(None)
            return done

        fragment = {LearningType(learning_type).value: {record_id: record.to_payload()}}
        return asyncio.ensure_future(self._push(fragment))

    async def _push(self, fragment: dict[str, dict[str, dict[str, Any]]]) -> None:
        """Send one change upstream; local state stays authoritative either way."""
        try:
            await self._remote.push(fragment)
        except RemoteAuthError:
            logger.warning("remote_progress_unauthorized")
            self._session.sign_out()
        except RemoteStoreError as e:
            logger.warning("remote_progress_update_failed", code=e.code, error=e.message)
        finally:
            self.publish()
