"""HTTP client for the remote progress store.

Protocol:
- ``GET <endpoint>`` returns the learner's full snapshot
- ``PUT <endpoint>`` with ``{type: {id: fields}}`` merges fields server-side
- ``401`` means the session is no longer valid
"""

from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from learntrail.core.logging import get_logger

from .models import ProgressState


if TYPE_CHECKING:
    from learntrail.auth.session import SessionState

logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class RemoteStoreError(ProgressError):
    """Remote progress store request failed."""

    def __init__(
        self,
        message: str = "Remote progress request failed",
        code: str = "remote_error",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, code)


class RemoteAuthError(RemoteStoreError):
    """Remote store rejected the session credentials."""

    def __init__(self, message: str = "Session rejected by remote store"):
        super().__init__(message, "unauthorized", httpx.codes.UNAUTHORIZED)


# ==============================================================================
# Client
# ==============================================================================


class RemoteProgressClient:
    """Async client for the progress endpoint."""

    def __init__(
        self,
        progress_url: str,
        session: "SessionState",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.progress_url = progress_url
        self._session = session
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _headers(self) -> dict[str, str]:
        token = self._session.access_token
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, json: Any = None) -> httpx.Response:
        try:
            response = await self._client.request(
                method, self.progress_url, json=json, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise RemoteStoreError(
                f"{method} {self.progress_url} failed: {e}", "transport_error"
            ) from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise RemoteAuthError
        if response.is_error:
            raise RemoteStoreError(
                f"{method} {self.progress_url} returned {response.status_code}",
                "http_error",
                response.status_code,
            )
        return response

    async def fetch(self) -> ProgressState:
        """Fetch the learner's full snapshot.

        Raises:
            RemoteAuthError: On 401
            RemoteStoreError: On transport failure, other HTTP errors or an
                unparseable body
        """
        response = await self._request("GET")
        try:
            return ProgressState.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RemoteStoreError(
                "Remote progress payload is invalid", "invalid_payload"
            ) from e

    async def push(self, fragment: dict[str, dict[str, dict[str, Any]]]) -> None:
        """Send a partial snapshot for server-side merge."""
        await self._request("PUT", json=fragment)
        logger.debug("remote_progress_pushed", types=sorted(fragment))

    async def aclose(self) -> None:
        await self._client.aclose()
