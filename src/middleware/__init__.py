"""Middleware components for the workflow service.

Provides:
- Correlation ID tracking for HTTP requests and WebSocket connections
- Logging context enrichment
"""

from .correlation import (
    CorrelationIdMiddleware,
    CorrelationIdFilter,
    configure_correlation_logging,
    get_correlation_id,
    set_correlation_id,
    reset_correlation_id,
)

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationIdFilter",
    "configure_correlation_logging",
    "get_correlation_id",
    "set_correlation_id",
    "reset_correlation_id",
]
