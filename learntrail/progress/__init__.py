"""Learner progress tracking engine.

Provides:
- Page start/completion with module, track and achievement cascade
- Time-weighted module progress estimation
- Local persistence with remote synchronization
- Anonymous-to-authenticated reconciliation
"""

from .models import (
    GRAND_OPENING,
    AccessedRecord,
    LearningRecord,
    LearningType,
    ProgressState,
)
from .remote import ProgressError, RemoteAuthError, RemoteStoreError
from .service import ProgressService
from .storage import FileStorage, KeyValueStorage, MemoryStorage


__all__ = [
    "GRAND_OPENING",
    "AccessedRecord",
    "FileStorage",
    "KeyValueStorage",
    "LearningRecord",
    "LearningType",
    "MemoryStorage",
    "ProgressError",
    "ProgressService",
    "ProgressState",
    "RemoteAuthError",
    "RemoteStoreError",
]
