"""Correlation ID Middleware.

Tags every HTTP request and every WebSocket connection with a correlation
ID so that a transition, the notifications it fans out and any fallback
emails can be traced in the logs. The correlation ID is:
- Taken from the X-Correlation-ID header, or generated
- Stored in a context variable for the lifetime of the request/connection
- Included in log records via CorrelationIdFilter
- Returned in HTTP response headers

Usage:
    from fastapi import FastAPI
    from middleware.correlation import CorrelationIdMiddleware

    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar, Token
from typing import Callable, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


_correlation_id_ctx: ContextVar[Optional[str]] = ContextVar(
    "correlation_id",
    default=None,
)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def get_correlation_id() -> Optional[str]:
    """Get the correlation ID of the current request or connection, or None."""
    return _correlation_id_ctx.get()


def set_correlation_id(correlation_id: Optional[str]) -> Token[Optional[str]]:
    """Set the correlation ID for the current context.

    Returns:
        Token that can be used to reset the context.
    """
    return _correlation_id_ctx.set(correlation_id)


def reset_correlation_id(token: Token[Optional[str]]) -> None:
    _correlation_id_ctx.reset(token)


class CorrelationIdMiddleware:
    """ASGI middleware assigning correlation IDs to HTTP and WebSocket scopes.

    WebSocket connections keep one correlation ID for their whole lifetime,
    so every message handled on a connection logs under the same ID.
    """

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = CORRELATION_ID_HEADER,
        generator: Optional[Callable[[], str]] = None,
    ):
        self.app = app
        self.header_name = header_name
        self.generator = generator or (lambda: str(uuid.uuid4()))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        correlation_id = Headers(scope=scope).get(self.header_name) or self.generator()
        scope.setdefault("state", {})["correlation_id"] = correlation_id

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[self.header_name] = correlation_id
                headers[REQUEST_ID_HEADER] = correlation_id
            await send(message)

        token = set_correlation_id(correlation_id)
        try:
            await self.app(scope, receive, send_with_header)
        finally:
            reset_correlation_id(token)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def configure_correlation_logging(
    log_format: Optional[str] = None,
    level: int = logging.INFO,
) -> logging.Handler:
    """Configure root logging with correlation ID support.

    Calling it more than once does not stack handlers.

    Args:
        log_format: Custom log format (must include %(correlation_id)s).
        level: Logging level.

    Returns:
        The installed handler.
    """
    if log_format is None:
        log_format = (
            "%(asctime)s [%(correlation_id)s] %(levelname)s "
            "%(name)s: %(message)s"
        )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if getattr(existing, "_correlation_handler", False):
            root_logger.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(log_format))
    handler.setLevel(level)
    handler._correlation_handler = True

    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Quiet noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return handler
