"""Local key-value persistence for progress snapshots.

The engine only needs two operations: read a string by key and overwrite a
string by key. The snapshot lives under a single key as JSON and is always
replaced wholesale.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from learntrail.core.logging import get_logger

from .models import ProgressState


logger = get_logger(__name__)

DEFAULT_STORAGE_KEY = "userProgressInfo"


class KeyValueStorage(Protocol):
    """Minimal string storage contract."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """In-process storage, lost at exit."""

    def __init__(self, items: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class FileStorage:
    """One file per key under a directory.

    Writes go through a temporary file and an atomic rename so a crash never
    leaves a half-written snapshot behind.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def load_snapshot(storage: KeyValueStorage, key: str = DEFAULT_STORAGE_KEY) -> ProgressState:
    """Read the stored snapshot; missing or malformed data yields an empty one."""
    try:
        raw = storage.get_item(key)
    except OSError as e:
        logger.debug("local_progress_unreadable", key=key, error=str(e))
        return ProgressState()

    if not raw:
        return ProgressState()

    try:
        return ProgressState.model_validate(json.loads(raw))
    except (ValueError, ValidationError, TypeError):
        logger.debug("local_progress_malformed", key=key)
        return ProgressState()


def save_snapshot(
    storage: KeyValueStorage,
    state: ProgressState,
    key: str = DEFAULT_STORAGE_KEY,
) -> None:
    """Overwrite the stored snapshot with ``state``."""
    storage.set_item(key, json.dumps(state.to_payload()))
