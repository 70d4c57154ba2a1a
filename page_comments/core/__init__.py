# Core infrastructure
from page_comments.core.context import (
    clear_context,
    get_context,
    get_page_url,
    get_request_id,
    get_trace_id,
    get_user_id,
    set_page_url,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from page_comments.core.logging import configure_structlog, get_logger
from page_comments.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_page_url",
    "get_request_id",
    "get_trace_id",
    "get_user_id",
    "set_page_url",
    "set_request_id",
    "set_trace_id",
    "set_user_id",
]
