"""
Domain Events for the ThreadCraft order workflow.

Domain events are immutable records of accepted workflow transitions.
The workflow engine emits exactly one per accepted request; the
notification composer turns them into per-recipient notifications.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class EventType(str, Enum):
    """Types of domain events."""
    # Design task events
    DESIGN_SUBMITTED = "design_submitted"
    DESIGN_APPROVED = "design_approved"
    DESIGN_REJECTED = "design_rejected"

    # Production task events
    PRODUCTION_SUBMITTED = "production_submitted"
    PRODUCTION_APPROVED = "production_approved"
    PRODUCTION_REJECTED = "production_rejected"

    # Generic status events
    TASK_STATUS_CHANGED = "task_status_changed"
    ORDER_STATUS_CHANGED = "order_status_changed"


class DomainEvent(BaseModel):
    """
    Base class for all domain events.

    All events are immutable and contain:
    - Unique event ID
    - When the event occurred
    - Metadata about context (correlation_id, etc.)
    """
    event_id: UUID = Field(default_factory=uuid4)
    event_type: EventType
    occurred_at: datetime = Field(default_factory=datetime.utcnow)

    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context (correlation_id, etc.)"
    )

    model_config = ConfigDict(frozen=True)


class WorkflowEvent(DomainEvent):
    """
    Event raised for every accepted order or task transition.

    detail carries from/to statuses and, for cascades, the order status
    the transition moved the parent order to.
    """
    order_id: str
    task_id: Optional[str] = None
    actor_id: str
    notes: Optional[str] = None
    detail: Dict[str, Any] = Field(default_factory=dict)

    @property
    def from_status(self) -> Optional[str]:
        return self.detail.get("from_status")

    @property
    def to_status(self) -> Optional[str]:
        return self.detail.get("to_status")

    @property
    def order_status(self) -> Optional[str]:
        """Order status after the transition, when the transition touched the order."""
        return self.detail.get("order_status")
