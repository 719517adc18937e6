"""
Domain Aggregates for the ThreadCraft order workflow.

Order is the aggregate root; design and production tasks belong to exactly
one order. Users and messages are referenced by id only.
"""

from datetime import datetime
from typing import Optional, List
from uuid import uuid4
from pydantic import BaseModel, Field

from rbac.roles import Role
from .value_objects import OrderStatus, TaskStatus, TaskKind, MessageStatus


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# USER
# =============================================================================

class User(BaseModel):
    """Directory entry for a participant. Role is fixed for this subsystem."""

    id: str = Field(default_factory=_new_id)
    role: Role
    email: str
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email


# =============================================================================
# ORDER AGGREGATE
# =============================================================================

class Order(BaseModel):
    """
    Order Aggregate Root.

    Invariants:
    - Status only changes through the workflow engine
    - Assignment fields change independently of status
    - Never deleted while tasks reference it
    """

    id: str = Field(default_factory=_new_id)
    order_number: str = Field(default="", description="Human facing order number")
    status: OrderStatus = Field(default=OrderStatus.DRAFT)

    customer_id: str
    salesperson_id: Optional[str] = None
    designer_id: Optional[str] = None
    manufacturer_id: Optional[str] = None

    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# TASK
# =============================================================================

class Task(BaseModel):
    """
    Design or production task against an order.

    The assignee is the designer for design tasks and the manufacturer
    for production tasks. File references are opaque.
    """

    id: str = Field(default_factory=_new_id)
    order_id: str
    kind: TaskKind = Field(default=TaskKind.DESIGN)
    assignee_id: Optional[str] = None
    status: TaskStatus = Field(default=TaskStatus.PENDING)

    description: Optional[str] = None
    files: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    rejection_notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# MESSAGE
# =============================================================================

class Message(BaseModel):
    """
    Direct user-to-user message.

    email_fallback_used moves False -> True at most once and is never reset.
    """

    id: str = Field(default_factory=_new_id)
    sender_id: str
    receiver_id: str
    subject: str = ""
    content: str

    order_id: Optional[str] = None
    task_id: Optional[str] = None

    status: MessageStatus = Field(default=MessageStatus.SENT)
    email_fallback_used: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    read_at: Optional[datetime] = None

    def to_payload(self) -> dict:
        """Wire representation pushed to connected clients."""
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "subject": self.subject,
            "content": self.content,
            "order_id": self.order_id,
            "task_id": self.task_id,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
