"""
WebSocket Routes

FastAPI WebSocket endpoint for live delivery plus connection statistics.

Connect with: ws://host/ws?token=<auth_token>
(or an "Authorization: Bearer <token>" header)
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from config.settings import get_settings
from rbac.context import AuthenticationFailure, resolve_token
from web.workflow_api import SendMessageRequest
from workflow.exceptions import WorkflowError

from .events import Envelope, EnvelopeType, MalformedEnvelope, error_envelope

logger = logging.getLogger(__name__)

websocket_router = APIRouter(prefix="/ws", tags=["WebSocket"])


def _extract_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


@websocket_router.websocket("")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None, description="Authentication token"),
):
    """
    Main WebSocket endpoint for real-time updates.

    Message format (incoming):
    - {"type": "message", "payload": {"receiver_id": "...", "content": "...", ...}}
    - {"type": "heartbeat"}

    Envelope format (outgoing):
    - {"type": "connected" | "new_message" | "notification" | "heartbeat" | "error",
       "payload": {...}}
    """
    services = websocket.app.state.services
    manager = services.connections

    try:
        ctx = resolve_token(_extract_token(websocket, token))
    except AuthenticationFailure as e:
        logger.warning(f"[WS] Handshake rejected: {e.reason}")
        await websocket.close(code=get_settings().realtime.auth_failure_close_code, reason=e.reason)
        return

    connection = await manager.connect(websocket, ctx.user_id, ctx.role.value)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                logger.warning(f"[WS] Dropped non-text frame from user={ctx.user_id}")
                continue

            try:
                envelope = Envelope.from_dict(json.loads(raw))
            except (json.JSONDecodeError, MalformedEnvelope) as e:
                logger.warning(f"[WS] Dropped malformed envelope from user={ctx.user_id}: {e}")
                continue

            if envelope.type == EnvelopeType.MESSAGE:
                await _handle_direct_message(services, connection, ctx.user_id, envelope)
            else:
                await manager.handle_message(connection, envelope)

    except WebSocketDisconnect:
        await manager.disconnect(ctx.user_id, connection)
    except Exception as e:
        logger.error(f"[WS] Error for user={ctx.user_id}: {e}", exc_info=True)
        await manager.disconnect(ctx.user_id, connection, close=True)


async def _handle_direct_message(services, connection, sender_id: str, envelope: Envelope):
    connection.messages_received += 1
    try:
        body = SendMessageRequest.model_validate(envelope.payload)
    except ValidationError as e:
        await _reject(connection, sender_id, _validation_summary(e), "VALIDATION_ERROR")
        return

    try:
        await services.messaging.send_message(
            sender_id=sender_id,
            receiver_id=body.receiver_id,
            content=body.content,
            order_id=body.order_id,
            task_id=body.task_id,
            subject=body.subject,
        )
    except (ValueError, WorkflowError) as e:
        await _reject(connection, sender_id, str(e), getattr(e, "error_code", "VALIDATION_ERROR"))


def _validation_summary(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc']) or 'payload'}: {detail['msg']}"
        for detail in error.errors()
    )


async def _reject(connection, sender_id: str, reason: str, code: str):
    logger.info(f"[WS] Message from user={sender_id} rejected: {reason}")
    try:
        await connection.send(error_envelope(reason, code).to_dict())
    except Exception as send_error:
        logger.warning(f"[WS] Failed to report error to user={sender_id}: {send_error}")


# =============================================================================
# HTTP ENDPOINTS
# =============================================================================

@websocket_router.get("/connections")
async def get_connections(request: Request):
    """Get current WebSocket connection statistics."""
    stats = request.app.state.services.connections.get_stats()
    return {
        "success": True,
        **stats,
    }


@websocket_router.post("/cleanup")
async def cleanup_stale_connections(
    request: Request,
    max_idle_seconds: Optional[int] = Query(None, ge=0, description="Max idle time in seconds"),
):
    """Close WebSocket connections idle for longer than max_idle_seconds."""
    if max_idle_seconds is None:
        max_idle_seconds = get_settings().realtime.max_idle_seconds
    cleaned = await request.app.state.services.connections.cleanup_stale_connections(max_idle_seconds)
    return {
        "success": True,
        "cleaned_connections": cleaned,
    }
