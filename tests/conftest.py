"""Shared fixtures: synthetic catalog, deterministic clock, fake Redis."""

import asyncio
import os
import tempfile
from datetime import UTC, datetime, timedelta

import pytest
from redis.exceptions import WatchError


# Must be set before learntrail.main configures logging
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="learntrail-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from learntrail.auth.session import SessionState  # noqa: E402
from learntrail.catalog import ContentTree  # noqa: E402
from learntrail.progress.storage import MemoryStorage  # noqa: E402


CATALOG = {
    "modules": {
        "modules": {"children": ["module-x", "basics", "untimed"]},
        # Single-unit module with its whole estimate on the unit
        "module-x": {
            "parent": "modules",
            "children": ["unit-1"],
            "minutes": [5, 5],
            "remaining": [5, 5],
        },
        "unit-1": {"parent": "module-x", "minutes": [5, 5]},
        # Module with a fork between two alternative setup paths
        "basics": {
            "parent": "modules",
            "children": ["basics/intro", "basics/setup"],
            "minutes": [2, 4],
            "remaining": [12, 16],
        },
        "basics/intro": {"parent": "basics", "minutes": [4, 6]},
        "basics/setup": {
            "parent": "basics",
            "children": ["basics/setup/linux", "basics/setup/windows"],
            "is_fork": True,
            "minutes": [2, 2],
        },
        "basics/setup/linux": {"parent": "basics/setup", "minutes": [4, 4]},
        "basics/setup/windows": {"parent": "basics/setup", "minutes": [6, 6]},
        # Module without any time estimates
        "untimed": {
            "parent": "modules",
            "children": ["untimed/a", "untimed/b", "untimed/c"],
        },
        "untimed/a": {"parent": "untimed"},
        "untimed/b": {"parent": "untimed"},
        "untimed/c": {"parent": "untimed"},
    },
    "tracks": {
        "tracks": {"children": ["track-y", "track-z", "track-empty"]},
        "track-y": {"modules": ["module-x"]},
        "track-z": {"modules": ["module-x", "untimed"]},
        "track-empty": {"modules": []},
    },
}


class FakeRedis:
    """In-memory async Redis double with WATCH/MULTI/EXEC semantics.

    Every command yields to the event loop so concurrent requests interleave
    the way they do against a real server.
    """

    def __init__(self):
        self.data: dict[str, str] = {}
        self.versions: dict[str, int] = {}

    def write(self, key: str, value: str) -> None:
        self.data[key] = value
        self.versions[key] = self.versions.get(key, 0) + 1

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        await asyncio.sleep(0)
        self.write(key, value)
        return True

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, redis: FakeRedis):
        self.redis = redis
        self.watched: dict[str, int] = {}
        self.queued: list[tuple[str, str]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *_: object) -> None:
        self.reset()

    def reset(self) -> None:
        self.watched.clear()
        self.queued.clear()

    async def watch(self, key: str) -> None:
        await asyncio.sleep(0)
        self.watched[key] = self.redis.versions.get(key, 0)

    async def get(self, key: str) -> str | None:
        return await self.redis.get(key)

    def multi(self) -> None:
        self.queued.clear()

    def set(self, key: str, value: str) -> "FakePipeline":
        self.queued.append((key, value))
        return self

    async def execute(self) -> list[bool]:
        await asyncio.sleep(0)
        try:
            for key, version in self.watched.items():
                if self.redis.versions.get(key, 0) != version:
                    raise WatchError("Watched variable changed.")
            for key, value in self.queued:
                self.redis.write(key, value)
            return [True] * len(self.queued)
        finally:
            self.reset()


class StepClock:
    """Returns a strictly increasing ISO timestamp on every call."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> str:
        self.current += timedelta(seconds=1)
        return self.current.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@pytest.fixture
def catalog() -> dict:
    return CATALOG


@pytest.fixture
def tree() -> ContentTree:
    return ContentTree.from_payload(CATALOG)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def anonymous_session() -> SessionState:
    return SessionState()


@pytest.fixture
def signed_in_session() -> SessionState:
    return SessionState(access_token="token-123", learner_id="learner-1")


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def app(fake_redis):
    """Progress store app wired to the fake Redis (lifespan not run)."""
    from learntrail.main import create_app
    from learntrail.records.service import RecordsService

    application = create_app()
    application.state.records_service = RecordsService(fake_redis)
    return application


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)
