"""
Domain Value Objects for the ThreadCraft order workflow.

Status vocabularies shared by the aggregates, the workflow state machine
and the HTTP surface.
"""

from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle of a custom clothing order, in workflow order."""
    DRAFT = "draft"
    PENDING_DESIGN = "pending_design"
    DESIGN_IN_PROGRESS = "design_in_progress"
    DESIGN_REVIEW = "design_review"
    DESIGN_APPROVED = "design_approved"
    PENDING_PRODUCTION = "pending_production"
    IN_PRODUCTION = "in_production"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class TaskStatus(str, Enum):
    """Lifecycle of a design or production task."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"  # transient; a rejected task is stored as in_progress
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class TaskKind(str, Enum):
    """Which stage of the order a task belongs to."""
    DESIGN = "design"
    PRODUCTION = "production"


class MessageStatus(str, Enum):
    """Delivery state of a direct message."""
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


class EntityType(str, Enum):
    """Targets accepted by the transition entry point."""
    ORDER = "order"
    TASK = "task"
