"""
Real-Time Delivery Module

WebSocket-based push of workflow notifications and direct messages.

Features:
- Per-user connection registry with any number of sockets per user
- Live push with email fallback when the recipient is offline
- Heartbeat/keepalive and stale connection cleanup

Usage:
    from realtime import ConnectionManager, EventRouter

    router = EventRouter(connections, fallback, directory)
    outcome = await router.route(recipient_id, notification)
"""

from .events import (
    Envelope,
    EnvelopeType,
    MalformedEnvelope,
    connected_envelope,
    heartbeat_envelope,
    error_envelope,
)
from .connection_manager import ConnectionInfo, ConnectionManager
from .event_router import DeliveryOutcome, EventRouter
from .websocket_routes import websocket_router

__all__ = [
    # Envelopes
    "Envelope",
    "EnvelopeType",
    "MalformedEnvelope",
    "connected_envelope",
    "heartbeat_envelope",
    "error_envelope",
    # Connections
    "ConnectionInfo",
    "ConnectionManager",
    # Routing
    "DeliveryOutcome",
    "EventRouter",
    # Routes
    "websocket_router",
]
