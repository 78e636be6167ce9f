"""Remote progress store service layer.

Each learner's progress is one JSON snapshot in Redis. Reads return the
whole snapshot; writes merge a partial snapshot into it field by field
(last write wins per field).
"""

import json
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from redis.exceptions import WatchError

from learntrail.core.redis import progress_key, update_with_retry
from learntrail.progress.models import LearningRecord, ProgressState


if TYPE_CHECKING:
    import redis.asyncio as redis

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class RecordsError(Exception):
    """Base records error."""

    def __init__(self, message: str, code: str = "records_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CorruptSnapshotError(RecordsError):
    """Stored snapshot cannot be parsed."""

    def __init__(self, message: str = "Stored progress snapshot is corrupt"):
        super().__init__(message, "corrupt_snapshot")


class MergeConflictError(RecordsError):
    """Snapshot kept changing while a merge was being applied."""

    def __init__(self, message: str = "Progress snapshot is busy, retry later"):
        super().__init__(message, "merge_conflict")


# ==============================================================================
# Records Service
# ==============================================================================


class RecordsService:
    """Stores learner progress snapshots."""

    def __init__(self, redis: "redis.Redis"):
        self.redis = redis

    async def get_snapshot(self, learner_id: str) -> ProgressState:
        """Full snapshot for a learner (empty if nothing was stored yet).

        Raises:
            CorruptSnapshotError: If the stored document is not a valid snapshot
        """
        raw = await self.redis.get(progress_key(learner_id))
        return self._parse(learner_id, raw)

    def _parse(self, learner_id: str, raw: str | None) -> ProgressState:
        if not raw:
            return ProgressState()
        try:
            return ProgressState.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error("progress_snapshot_corrupt", learner_id=learner_id)
            raise CorruptSnapshotError from e

    async def merge_snapshot(
        self,
        learner_id: str,
        changes: ProgressState,
    ) -> ProgressState:
        """Merge a partial snapshot into the stored one and return the result.

        The read and the write happen in one Redis transaction, so concurrent
        merges for the same learner never drop each other's fields.

        Raises:
            CorruptSnapshotError: If the stored document is not a valid snapshot
            MergeConflictError: If the snapshot kept changing during the merge
        """
        merged: list[ProgressState] = []

        def apply(raw: str | None) -> str:
            snapshot = self._parse(learner_id, raw)
            for learning_type, record_id, record in changes.entries():
                bucket = snapshot.bucket(learning_type)
                current = bucket.get(record_id) or LearningRecord()
                bucket[record_id] = current.merged(record.to_payload())
            merged[:] = [snapshot]
            return json.dumps(snapshot.to_payload())

        try:
            await update_with_retry(self.redis, progress_key(learner_id), apply)
        except WatchError as e:
            logger.warning("progress_snapshot_merge_conflict", learner_id=learner_id)
            raise MergeConflictError from e

        logger.info(
            "progress_snapshot_merged",
            learner_id=learner_id,
            records=sum(1 for _ in changes.entries()),
        )
        return merged[0]
