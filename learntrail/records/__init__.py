"""Remote progress store.

Server side of the progress protocol: full-snapshot reads and partial,
per-field merges, one Redis document per learner.
"""

from .service import (
    CorruptSnapshotError,
    MergeConflictError,
    RecordsError,
    RecordsService,
)


__all__ = [
    "CorruptSnapshotError",
    "MergeConflictError",
    "RecordsError",
    "RecordsService",
]
