# Core infrastructure
from folio.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from folio.core.logging import configure_structlog, get_logger
from folio.core.middleware import RequestContextMiddleware, get_client_ip


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_client_ip",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_id",
]
