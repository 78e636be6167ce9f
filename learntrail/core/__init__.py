# Core infrastructure
from learntrail.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_learner_id,
    get_page_id,
    get_request_id,
    set_learner_id,
    set_page_id,
    set_request_id,
)
from learntrail.core.logging import configure_structlog, get_logger


__all__ = [
    "RequestContext",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_learner_id",
    "get_logger",
    "get_page_id",
    "get_request_id",
    "set_learner_id",
    "set_page_id",
    "set_request_id",
]
