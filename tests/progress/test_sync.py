"""Tests for local/remote reconciliation."""

from unittest.mock import AsyncMock, Mock

import pytest

from learntrail.progress.calculator import ProgressCalculator
from learntrail.progress.cascade import CompletionCascade
from learntrail.progress.models import LearningType, ProgressState
from learntrail.progress.remote import RemoteStoreError
from learntrail.progress.storage import MemoryStorage, save_snapshot
from learntrail.progress.store import ProgressStore
from learntrail.progress.sync import SyncReconciler


LOCAL = ProgressState.model_validate(
    {
        "units": {"unit-1": {"completed_at": "2024-01-01T00:00:01.000Z"}},
        "modules": {"module-x": {"started_at": "2024-01-01T00:00:00.000Z"}},
    }
)

REMOTE = ProgressState.model_validate(
    {"units": {"basics/intro": {"started_at": "2023-06-01T00:00:00.000Z"}}}
)


@pytest.fixture
def local_storage() -> MemoryStorage:
    storage = MemoryStorage()
    save_snapshot(storage, LOCAL)
    return storage


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def remote(calls) -> Mock:
    client = Mock()
    client.push = AsyncMock(side_effect=lambda fragment: calls.append("push"))

    async def _fetch() -> ProgressState:
        calls.append("fetch")
        return REMOTE

    client.fetch = AsyncMock(side_effect=_fetch)
    return client


def _reconciler(tree, storage, session, clock, remote) -> SyncReconciler:
    store = ProgressStore(storage, session, remote)
    cascade = CompletionCascade(tree, store, ProgressCalculator(tree, store), clock)
    return SyncReconciler(store, session, cascade, remote)


class TestInitialize:
    """Tests for a single initialization pass."""

    @pytest.mark.asyncio
    async def test_anonymous_publishes_local(
        self, tree, local_storage, anonymous_session, clock, remote
    ) -> None:
        reconciler = _reconciler(tree, local_storage, anonymous_session, clock, remote)
        published: list[ProgressState] = []
        reconciler.store.subscribe(published.append)

        await reconciler.initialize(None)

        assert published[-1] == LOCAL
        remote.fetch.assert_not_called()
        remote.push.assert_not_called()

    @pytest.mark.asyncio
    async def test_signed_in_replaces_with_remote(
        self, tree, local_storage, signed_in_session, clock, remote
    ) -> None:
        reconciler = _reconciler(tree, local_storage, signed_in_session, clock, remote)

        await reconciler.initialize(None)

        assert reconciler.store.snapshot() == REMOTE
        assert reconciler.store.load_local() == REMOTE
        remote.push.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_failure_falls_back_to_local(
        self, tree, local_storage, signed_in_session, clock, remote
    ) -> None:
        remote.fetch.side_effect = RemoteStoreError("down", "transport_error")
        reconciler = _reconciler(tree, local_storage, signed_in_session, clock, remote)

        await reconciler.initialize(None)

        assert reconciler.store.snapshot() == LOCAL
        assert signed_in_session.is_authenticated

    @pytest.mark.asyncio
    async def test_without_remote_uses_local(
        self, tree, local_storage, signed_in_session, clock
    ) -> None:
        reconciler = _reconciler(tree, local_storage, signed_in_session, clock, None)
        await reconciler.initialize(None)
        assert reconciler.store.snapshot() == LOCAL

    @pytest.mark.asyncio
    async def test_current_page_started_after_load(
        self, tree, local_storage, signed_in_session, clock, remote
    ) -> None:
        reconciler = _reconciler(tree, local_storage, signed_in_session, clock, remote)

        await reconciler.initialize("basics")

        store = reconciler.store
        assert store.read(LearningType.UNITS, "basics/intro") == REMOTE.units["basics/intro"]
        assert store.read(LearningType.MODULES, "basics").started_at
        assert store.read(LearningType.UNITS, "basics").started_at


class TestAnonymousToSignedIn:
    """Tests for replaying offline progress on sign-in."""

    @pytest.mark.asyncio
    async def test_local_records_replayed_before_fetch(
        self, tree, local_storage, anonymous_session, clock, remote, calls
    ) -> None:
        reconciler = _reconciler(tree, local_storage, anonymous_session, clock, remote)
        await reconciler.on_auth_changed(False, None)
        assert reconciler.was_anonymous

        anonymous_session.sign_in("token-abc", "learner-9")
        await reconciler.on_auth_changed(True, None)

        assert calls == ["push", "push", "fetch"]
        pushed = [call.args[0] for call in remote.push.await_args_list]
        assert {"units": {"unit-1": {"completed_at": "2024-01-01T00:00:01.000Z"}}} in pushed
        assert {"modules": {"module-x": {"started_at": "2024-01-01T00:00:00.000Z"}}} in pushed
        assert reconciler.store.snapshot() == REMOTE
        assert not reconciler.was_anonymous

    @pytest.mark.asyncio
    async def test_replay_happens_once(
        self, tree, local_storage, anonymous_session, clock, remote, calls
    ) -> None:
        reconciler = _reconciler(tree, local_storage, anonymous_session, clock, remote)
        await reconciler.on_auth_changed(False, None)
        anonymous_session.sign_in("token-abc")

        await reconciler.on_auth_changed(True, None)
        await reconciler.on_auth_changed(True, None)

        assert calls == ["push", "push", "fetch", "fetch"]

    @pytest.mark.asyncio
    async def test_nothing_local_skips_replay(
        self, tree, storage, anonymous_session, clock, remote, calls
    ) -> None:
        reconciler = _reconciler(tree, storage, anonymous_session, clock, remote)
        await reconciler.on_auth_changed(False, None)
        anonymous_session.sign_in("token-abc")

        await reconciler.on_auth_changed(True, None)

        assert calls == ["fetch"]
        assert not reconciler.was_anonymous

    @pytest.mark.asyncio
    async def test_signed_in_from_start_does_not_replay(
        self, tree, local_storage, signed_in_session, clock, remote, calls
    ) -> None:
        reconciler = _reconciler(tree, local_storage, signed_in_session, clock, remote)
        await reconciler.on_auth_changed(True, None)
        assert calls == ["fetch"]
