"""
Workflow API - HTTP surface for transitions, uploads and messages.

Routes:
- POST /api/orders/{order_id}/transition  : move an order to a new status
- POST /api/orders/{order_id}/assignment  : re-assign order staff
- POST /api/tasks/{task_id}/transition    : move a task to a new status
- POST /api/tasks/{task_id}/files         : upload (attach) a file reference
- POST /api/messages                      : send a direct message
- POST /api/messages/{message_id}/read    : mark a message read

The caller is always the authenticated user; actor ids are never taken
from the request body.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from domain.value_objects import EntityType
from rbac.context import AuthContext
from rbac.dependencies import require_auth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Workflow"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class TransitionRequest(BaseModel):
    target_status: str = Field(..., description="Status to move to")
    notes: Optional[str] = Field(None, description="Review notes or rejection feedback")


class FileUploadRequest(BaseModel):
    file_ref: str = Field(..., min_length=1, description="Opaque reference to the stored file")
    notes: Optional[str] = None


class AssignmentRequest(BaseModel):
    salesperson_id: Optional[str] = None
    designer_id: Optional[str] = None
    manufacturer_id: Optional[str] = None


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: str = Field(..., min_length=1, max_length=10000)
    subject: str = ""
    order_id: Optional[str] = None
    task_id: Optional[str] = None


def _services(request: Request):
    return request.app.state.services


# =============================================================================
# ORDERS
# =============================================================================

@router.post("/orders/{order_id}/transition")
async def transition_order(
    order_id: str,
    body: TransitionRequest,
    request: Request,
    ctx: AuthContext = Depends(require_auth),
):
    result = await _services(request).workflow.request_transition(
        EntityType.ORDER, order_id, body.target_status, ctx.user_id, body.notes,
    )
    return {"success": True, **result.to_dict()}


@router.post("/orders/{order_id}/assignment")
async def assign_order(
    order_id: str,
    body: AssignmentRequest,
    request: Request,
    ctx: AuthContext = Depends(require_auth),
):
    order = _services(request).workflow.assign_order(
        order_id,
        ctx.user_id,
        salesperson_id=body.salesperson_id,
        designer_id=body.designer_id,
        manufacturer_id=body.manufacturer_id,
    )
    return {"success": True, "order": order.model_dump(mode="json")}


# =============================================================================
# TASKS
# =============================================================================

@router.post("/tasks/{task_id}/transition")
async def transition_task(
    task_id: str,
    body: TransitionRequest,
    request: Request,
    ctx: AuthContext = Depends(require_auth),
):
    result = await _services(request).workflow.request_transition(
        EntityType.TASK, task_id, body.target_status, ctx.user_id, body.notes,
    )
    return {"success": True, **result.to_dict()}


@router.post("/tasks/{task_id}/files")
async def upload_task_file(
    task_id: str,
    body: FileUploadRequest,
    request: Request,
    ctx: AuthContext = Depends(require_auth),
):
    result = await _services(request).workflow.upload_file(
        task_id, ctx.user_id, body.file_ref, body.notes,
    )
    return {"success": True, "files": result.task.files, **result.to_dict()}


# =============================================================================
# MESSAGES
# =============================================================================

@router.post("/messages", status_code=201)
async def send_message(
    body: SendMessageRequest,
    request: Request,
    ctx: AuthContext = Depends(require_auth),
):
    message = await _services(request).messaging.send_message(
        sender_id=ctx.user_id,
        receiver_id=body.receiver_id,
        content=body.content,
        order_id=body.order_id,
        task_id=body.task_id,
        subject=body.subject,
    )
    return {
        "success": True,
        "message": message.to_payload(),
        "email_fallback_used": message.email_fallback_used,
    }


@router.post("/messages/{message_id}/read")
async def mark_message_read(
    message_id: str,
    request: Request,
    ctx: AuthContext = Depends(require_auth),
):
    message = _services(request).messaging.mark_read(message_id, ctx.user_id)
    return {
        "success": True,
        "message_id": message.id,
        "status": message.status.value,
        "read_at": message.read_at.isoformat() if message.read_at else None,
    }
