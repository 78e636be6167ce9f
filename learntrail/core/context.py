"""Execution context management using contextvars.

Each HTTP request (server side) or page interaction (client side) carries a
request ID plus the learner and page being worked on. Values are read by the
logging processors so they show up on every log line without being passed
around explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
learner_id_var: ContextVar[str | None] = ContextVar("learner_id", default=None)
page_id_var: ContextVar[str | None] = ContextVar("page_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_learner_id() -> str | None:
    """Get the current learner ID."""
    return learner_id_var.get()


def set_learner_id(learner_id: str | None) -> None:
    """Set the learner ID for the current context."""
    learner_id_var.set(str(learner_id) if learner_id is not None else None)


def get_page_id() -> str | None:
    """Get the content page currently being processed."""
    return page_id_var.get()


def set_page_id(page_id: str | None) -> None:
    """Set the content page currently being processed."""
    page_id_var.set(page_id)


def get_context() -> dict[str, Any]:
    """Get all context variables as a dictionary.

    Returns:
        Dictionary with whichever of request_id, learner_id and page_id are set.
    """
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    learner_id = get_learner_id()
    if learner_id:
        context["learner_id"] = learner_id

    page_id = get_page_id()
    if page_id:
        context["page_id"] = page_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    This should be called at the end of each request to prevent
    context leakage between requests.
    """
    request_id_var.set("")
    learner_id_var.set(None)
    page_id_var.set(None)


class RequestContext:
    """Context manager for a request or page interaction scope.

    Usage:
        with RequestContext(page_id="module-x/unit-1"):
            log.info("doing something")  # Will include request_id, page_id
    """

    def __init__(
        self,
        request_id: str | None = None,
        learner_id: str | None = None,
        page_id: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.learner_id = learner_id
        self.page_id = page_id
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "RequestContext":
        """Enter context and set variables."""
        self._tokens["request_id"] = request_id_var.set(
            self.request_id or generate_request_id()
        )

        if self.learner_id is not None:
            self._tokens["learner_id"] = learner_id_var.set(str(self.learner_id))

        if self.page_id is not None:
            self._tokens["page_id"] = page_id_var.set(self.page_id)

        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var_name, token in self._tokens.items():
            if var_name == "request_id":
                request_id_var.reset(token)
            elif var_name == "learner_id":
                learner_id_var.reset(token)
            elif var_name == "page_id":
                page_id_var.reset(token)
