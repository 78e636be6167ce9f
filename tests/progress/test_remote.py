"""Tests for the remote progress store client."""

import json

import httpx
import pytest

from learntrail.auth.session import SessionState
from learntrail.progress.remote import (
    RemoteAuthError,
    RemoteProgressClient,
    RemoteStoreError,
)


URL = "https://progress.example.test/api/v1/progress"


def _client(handler, session: SessionState) -> RemoteProgressClient:
    return RemoteProgressClient(URL, session, transport=httpx.MockTransport(handler))


class TestFetch:
    """Tests for GET requests."""

    @pytest.mark.asyncio
    async def test_fetch_sends_bearer_token(self, signed_in_session) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"tracks": {"track-y": {"completed_at": "t"}}}
            )

        client = _client(handler, signed_in_session)
        state = await client.fetch()
        await client.aclose()

        assert seen[0].method == "GET"
        assert seen[0].headers["Authorization"] == "Bearer token-123"
        assert state.tracks["track-y"].completed_at == "t"
        assert state.units == {}

    @pytest.mark.asyncio
    async def test_fetch_unauthorized(self, signed_in_session) -> None:
        client = _client(lambda request: httpx.Response(401), signed_in_session)
        with pytest.raises(RemoteAuthError) as exc_info:
            await client.fetch()
        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "unauthorized"

    @pytest.mark.asyncio
    async def test_fetch_server_error(self, signed_in_session) -> None:
        client = _client(lambda request: httpx.Response(503), signed_in_session)
        with pytest.raises(RemoteStoreError) as exc_info:
            await client.fetch()
        assert exc_info.value.code == "http_error"
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_fetch_invalid_body(self, signed_in_session) -> None:
        client = _client(
            lambda request: httpx.Response(200, content=b"<html>"), signed_in_session
        )
        with pytest.raises(RemoteStoreError) as exc_info:
            await client.fetch()
        assert exc_info.value.code == "invalid_payload"

    @pytest.mark.asyncio
    async def test_transport_failure(self, signed_in_session) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler, signed_in_session)
        with pytest.raises(RemoteStoreError) as exc_info:
            await client.fetch()
        assert exc_info.value.code == "transport_error"


class TestPush:
    """Tests for PUT requests."""

    @pytest.mark.asyncio
    async def test_push_sends_fragment(self, signed_in_session) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "PUT"
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        client = _client(handler, signed_in_session)
        await client.push({"units": {"p1": {"started_at": "t1"}}})

        assert bodies == [{"units": {"p1": {"started_at": "t1"}}}]

    @pytest.mark.asyncio
    async def test_no_token_no_header(self, anonymous_session) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = _client(handler, anonymous_session)
        await client.push({"units": {}})
        assert "Authorization" not in seen[0].headers
