"""
Workflow States and Transition Tables

Single source of truth for which order and task transitions are legal and
who may request them. The engine consults these tables; nothing else
re-derives the rules.
"""

from enum import Enum
from typing import Dict, FrozenSet, Set, Tuple

from domain.events import EventType
from domain.value_objects import OrderStatus, TaskStatus, TaskKind
from rbac.roles import Role


class Actor(str, Enum):
    """
    Who may drive a transition.

    Role grants come from the caller's role; relationship grants come from
    how the caller is attached to the order or task.
    """
    ADMIN = "admin"
    SALESPERSON = "salesperson"
    ASSIGNEE = "assignee"                      # task's designer/manufacturer
    ORDER_DESIGNER = "order_designer"
    ORDER_MANUFACTURER = "order_manufacturer"


ROLE_GRANTS: Dict[Role, FrozenSet[Actor]] = {
    Role.ADMIN: frozenset({Actor.ADMIN}),
    Role.SALESPERSON: frozenset({Actor.SALESPERSON}),
    Role.DESIGNER: frozenset(),
    Role.MANUFACTURER: frozenset(),
    Role.CUSTOMER: frozenset(),
}

REVIEWERS: FrozenSet[Actor] = frozenset({Actor.ADMIN, Actor.SALESPERSON})


# =============================================================================
# ORDER
# =============================================================================

VALID_ORDER_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.DRAFT: {OrderStatus.PENDING_DESIGN, OrderStatus.CANCELLED},
    OrderStatus.PENDING_DESIGN: {OrderStatus.DESIGN_IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.DESIGN_IN_PROGRESS: {OrderStatus.DESIGN_REVIEW, OrderStatus.CANCELLED},
    OrderStatus.DESIGN_REVIEW: {
        OrderStatus.DESIGN_APPROVED,
        OrderStatus.DESIGN_IN_PROGRESS,  # sent back for rework
        OrderStatus.CANCELLED,
    },
    OrderStatus.DESIGN_APPROVED: {OrderStatus.PENDING_PRODUCTION, OrderStatus.CANCELLED},
    OrderStatus.PENDING_PRODUCTION: {OrderStatus.IN_PRODUCTION, OrderStatus.CANCELLED},
    OrderStatus.IN_PRODUCTION: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

_DESIGN_WORK = REVIEWERS | {Actor.ORDER_DESIGNER}
_PRODUCTION_WORK = REVIEWERS | {Actor.ORDER_MANUFACTURER}

ORDER_TRANSITION_PERMISSIONS: Dict[Tuple[OrderStatus, OrderStatus], FrozenSet[Actor]] = {
    (OrderStatus.DRAFT, OrderStatus.PENDING_DESIGN): REVIEWERS,
    (OrderStatus.PENDING_DESIGN, OrderStatus.DESIGN_IN_PROGRESS): _DESIGN_WORK,
    (OrderStatus.DESIGN_IN_PROGRESS, OrderStatus.DESIGN_REVIEW): _DESIGN_WORK,
    (OrderStatus.DESIGN_REVIEW, OrderStatus.DESIGN_APPROVED): REVIEWERS,
    (OrderStatus.DESIGN_REVIEW, OrderStatus.DESIGN_IN_PROGRESS): REVIEWERS,
    (OrderStatus.DESIGN_APPROVED, OrderStatus.PENDING_PRODUCTION): REVIEWERS,
    (OrderStatus.PENDING_PRODUCTION, OrderStatus.IN_PRODUCTION): _PRODUCTION_WORK,
    (OrderStatus.IN_PRODUCTION, OrderStatus.COMPLETED): _PRODUCTION_WORK,
}

# Upload on a design task advances the order to design_review from these
DESIGN_UPLOAD_ADVANCES_FROM: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PENDING_DESIGN,
    OrderStatus.DESIGN_IN_PROGRESS,
})


# =============================================================================
# TASK
# =============================================================================

VALID_TASK_TRANSITIONS: Dict[TaskStatus, Set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.SUBMITTED, TaskStatus.CANCELLED},
    TaskStatus.SUBMITTED: {TaskStatus.APPROVED, TaskStatus.REJECTED, TaskStatus.CANCELLED},
    TaskStatus.APPROVED: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.REJECTED: {TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

_ASSIGNEE_ONLY = frozenset({Actor.ASSIGNEE})

TASK_TRANSITION_PERMISSIONS: Dict[Tuple[TaskStatus, TaskStatus], FrozenSet[Actor]] = {
    (TaskStatus.PENDING, TaskStatus.IN_PROGRESS): _ASSIGNEE_ONLY,
    (TaskStatus.IN_PROGRESS, TaskStatus.SUBMITTED): _ASSIGNEE_ONLY,
    (TaskStatus.SUBMITTED, TaskStatus.APPROVED): REVIEWERS,
    (TaskStatus.SUBMITTED, TaskStatus.REJECTED): REVIEWERS,
    (TaskStatus.APPROVED, TaskStatus.COMPLETED): REVIEWERS,
    (TaskStatus.REJECTED, TaskStatus.IN_PROGRESS): _ASSIGNEE_ONLY,
}

# Statuses where a file upload submits the task
UPLOAD_SUBMITS_FROM: FrozenSet[TaskStatus] = frozenset({
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
})

# Statuses where a file upload only attaches the file
UPLOAD_ATTACHES_IN: FrozenSet[TaskStatus] = frozenset({
    TaskStatus.SUBMITTED,
    TaskStatus.APPROVED,
})

# Rejection is recorded, then the task is stored back in this status
REJECTED_TASK_STORED_AS = TaskStatus.IN_PROGRESS

# Design tasks in these statuses satisfy the design_approved guard
APPROVED_DESIGN_STATUSES: FrozenSet[TaskStatus] = frozenset({
    TaskStatus.APPROVED,
    TaskStatus.COMPLETED,
})

TASK_EVENT_TYPES: Dict[Tuple[TaskKind, TaskStatus], EventType] = {
    (TaskKind.DESIGN, TaskStatus.SUBMITTED): EventType.DESIGN_SUBMITTED,
    (TaskKind.DESIGN, TaskStatus.APPROVED): EventType.DESIGN_APPROVED,
    (TaskKind.DESIGN, TaskStatus.REJECTED): EventType.DESIGN_REJECTED,
    (TaskKind.PRODUCTION, TaskStatus.SUBMITTED): EventType.PRODUCTION_SUBMITTED,
    (TaskKind.PRODUCTION, TaskStatus.APPROVED): EventType.PRODUCTION_APPROVED,
    (TaskKind.PRODUCTION, TaskStatus.REJECTED): EventType.PRODUCTION_REJECTED,
}


# =============================================================================
# LOOKUPS
# =============================================================================

def can_transition_order(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in VALID_ORDER_TRANSITIONS.get(from_status, set())


def can_transition_task(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    return to_status in VALID_TASK_TRANSITIONS.get(from_status, set())


def order_permission(from_status: OrderStatus, to_status: OrderStatus) -> FrozenSet[Actor]:
    """Actors allowed to drive an order transition. Cancellation is reviewers only."""
    if to_status == OrderStatus.CANCELLED:
        return REVIEWERS
    return ORDER_TRANSITION_PERMISSIONS.get((from_status, to_status), frozenset())


def task_permission(from_status: TaskStatus, to_status: TaskStatus) -> FrozenSet[Actor]:
    """Actors allowed to drive a task transition. Cancellation is reviewers only."""
    if to_status == TaskStatus.CANCELLED:
        return REVIEWERS
    return TASK_TRANSITION_PERMISSIONS.get((from_status, to_status), frozenset())


def task_event_type(kind: TaskKind, to_status: TaskStatus) -> EventType:
    return TASK_EVENT_TYPES.get((kind, to_status), EventType.TASK_STATUS_CHANGED)
