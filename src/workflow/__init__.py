"""
Order/Task Workflow

State machine governing how an order moves from intake through design and
production to completion, and how its design/production tasks move through
review.

Usage:
    from workflow import WorkflowEngine

    engine = WorkflowEngine(orders, tasks, users, event_bus)
    result = engine.request_transition("task", task_id, "approved", actor_id)
    result.status        # "approved"
    result.order.status  # OrderStatus.DESIGN_APPROVED when the order was in review
"""

from .exceptions import WorkflowError, InvalidTransition, EntityNotFound
from .states import (
    Actor,
    VALID_ORDER_TRANSITIONS,
    VALID_TASK_TRANSITIONS,
    ORDER_TRANSITION_PERMISSIONS,
    TASK_TRANSITION_PERMISSIONS,
    can_transition_order,
    can_transition_task,
)
from .engine import WorkflowEngine, TransitionResult

__all__ = [
    "WorkflowError",
    "InvalidTransition",
    "EntityNotFound",
    "Actor",
    "VALID_ORDER_TRANSITIONS",
    "VALID_TASK_TRANSITIONS",
    "ORDER_TRANSITION_PERMISSIONS",
    "TASK_TRANSITION_PERMISSIONS",
    "can_transition_order",
    "can_transition_task",
    "WorkflowEngine",
    "TransitionResult",
]
