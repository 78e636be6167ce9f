"""Progress state models.

A learner's progress is one snapshot holding a mapping per learning type:
- units: individual pages (module roots are tracked here too)
- modules: module roots, completed by the cascade
- tracks: track collections, completed by the cascade
- achievements: grants keyed by track id or ``grand-opening``

Timestamps are ISO-8601 UTC strings, so lexicographic order is time order.
"""

from collections.abc import Iterator, Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class LearningType(str, Enum):
    """Kind of entity a progress record belongs to."""

    ACHIEVEMENTS = "achievements"
    TRACKS = "tracks"
    MODULES = "modules"
    UNITS = "units"


# Achievement granted once any module is completed
GRAND_OPENING = "grand-opening"
STANDARD_ACHIEVEMENT = "standard"


def utc_now_iso() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class LearningRecord(BaseModel):
    """Progress record for one (learning type, identifier) pair.

    Extra fields sent by the remote store are kept as-is.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    started_at: str | None = None
    completed_at: str | None = None
    achievement_type: str | None = None
    earned_at: str | None = None

    @property
    def touched_at(self) -> str:
        """Later of ``started_at`` and ``completed_at`` ("" when neither is set)."""
        return max(self.started_at or "", self.completed_at or "")

    def merged(self, fields: Mapping[str, Any]) -> "LearningRecord":
        """Return a copy with ``fields`` applied (last write wins per field)."""
        return LearningRecord.model_validate({**self.to_payload(), **fields})

    def to_payload(self) -> dict[str, Any]:
        """Serialize without unset fields."""
        return self.model_dump(exclude_none=True)


class AccessedRecord(NamedTuple):
    """A record tagged with the identifier it is stored under."""

    id: str
    record: LearningRecord

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, **self.record.to_payload()}


class ProgressState(BaseModel):
    """Full progress snapshot, as held in memory, on disk and remotely."""

    model_config = ConfigDict(extra="ignore")

    achievements: dict[str, LearningRecord] = Field(default_factory=dict)
    tracks: dict[str, LearningRecord] = Field(default_factory=dict)
    modules: dict[str, LearningRecord] = Field(default_factory=dict)
    units: dict[str, LearningRecord] = Field(default_factory=dict)

    def bucket(self, learning_type: LearningType | str) -> dict[str, LearningRecord]:
        """Mutable mapping of identifier to record for one learning type."""
        return getattr(self, LearningType(learning_type).value)

    def entries(self) -> Iterator[tuple[LearningType, str, LearningRecord]]:
        """Iterate every (learning type, identifier, record) triple."""
        for learning_type in LearningType:
            for record_id, record in self.bucket(learning_type).items():
                yield learning_type, record_id, record

    def is_empty(self) -> bool:
        return not any(self.bucket(learning_type) for learning_type in LearningType)

    def to_payload(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Serialize as ``{type: {id: fields}}`` without unset fields."""
        return {
            learning_type.value: {
                record_id: record.to_payload()
                for record_id, record in self.bucket(learning_type).items()
            }
            for learning_type in LearningType
        }
