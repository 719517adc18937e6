"""
Workflow Engine

Validates and applies order and task transitions against the tables in
workflow.states. Every accepted request writes its changes and publishes
exactly one WorkflowEvent; rejected requests raise InvalidTransition
before anything is written.

Transitions are synchronous. Concurrent requests against the same order
are last-writer-wins; the repositories apply each write atomically.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Set, Union
import logging

from domain.aggregates import Order, Task, User
from domain.event_bus import EventBus, get_event_bus
from domain.events import EventType, WorkflowEvent
from domain.repositories import IOrderRepository, ITaskRepository, IUserDirectory
from domain.value_objects import EntityType, OrderStatus, TaskKind, TaskStatus
from middleware.correlation import get_correlation_id
from rbac.roles import Role

from .exceptions import EntityNotFound, InvalidTransition
from .states import (
    Actor,
    ROLE_GRANTS,
    REVIEWERS,
    APPROVED_DESIGN_STATUSES,
    DESIGN_UPLOAD_ADVANCES_FROM,
    REJECTED_TASK_STORED_AS,
    UPLOAD_ATTACHES_IN,
    UPLOAD_SUBMITS_FROM,
    can_transition_order,
    can_transition_task,
    order_permission,
    task_event_type,
    task_permission,
)

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    """Outcome of an accepted workflow request."""
    entity_type: EntityType
    order: Order
    task: Optional[Task] = None
    event: Optional[WorkflowEvent] = None

    @property
    def status(self) -> str:
        """Stored status of the entity the request targeted."""
        if self.entity_type == EntityType.TASK and self.task is not None:
            return self.task.status.value
        return self.order.status.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type.value,
            "status": self.status,
            "order_id": self.order.id,
            "order_status": self.order.status.value,
            "task_id": self.task.id if self.task else None,
            "task_status": self.task.status.value if self.task else None,
            "event_type": self.event.event_type.value if self.event else None,
        }


class WorkflowEngine:
    """
    Engine for order/task lifecycle transitions.

    Single entry point for status changes: request_transition for explicit
    requests, upload_file for the implicit submit-on-upload transition.
    """

    def __init__(
        self,
        orders: IOrderRepository,
        tasks: ITaskRepository,
        users: IUserDirectory,
        event_bus: Optional[EventBus] = None,
    ):
        self._orders = orders
        self._tasks = tasks
        self._users = users
        self._event_bus = event_bus or get_event_bus()

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def request_transition(
        self,
        entity_type: Union[EntityType, str],
        entity_id: str,
        target_status: str,
        actor_id: str,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move an order or task to target_status on behalf of actor_id.

        Raises:
            InvalidTransition: the rules forbid the change
            EntityNotFound: the order or task does not exist
        """
        try:
            entity_type = EntityType(entity_type)
        except ValueError:
            raise InvalidTransition(f"Unknown entity type: {entity_type}")

        actor = self._require_actor(actor_id)

        if entity_type == EntityType.ORDER:
            order = self._require_order(entity_id)
            target = self._parse_status(OrderStatus, target_status, order.status.value)
            return self._transition_order(order, target, actor, notes)

        task = self._require_task(entity_id)
        target = self._parse_status(TaskStatus, target_status, task.status.value)
        return self._transition_task(task, target, actor, notes)

    def upload_file(
        self,
        task_id: str,
        actor_id: str,
        file_ref: str,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Attach a file to a task.

        A pending or in-progress task is submitted by the upload, and a design
        upload advances the order to design_review when the order is still in
        the design stage. A submitted or approved task only gets the file
        attached and no event is emitted.
        """
        if not file_ref:
            raise InvalidTransition("File reference is required")

        actor = self._require_actor(actor_id)
        task = self._require_task(task_id)
        order = self._require_order(task.order_id)

        if Actor.ASSIGNEE not in self._grants(actor, order, task):
            raise InvalidTransition(
                f"Only the task's assignee may upload files (actor={actor.id})",
                current_status=task.status.value,
                target_status=TaskStatus.SUBMITTED.value,
            )

        files = list(task.files) + [file_ref]

        if task.status in UPLOAD_ATTACHES_IN:
            updated_task = self._tasks.update(task.id, {"files": files})
            logger.info(f"File attached to {task.status.value} task {task.id}")
            return TransitionResult(EntityType.TASK, order=order, task=updated_task)

        if task.status not in UPLOAD_SUBMITS_FROM:
            raise InvalidTransition(
                f"Cannot upload files to a {task.status.value} task",
                current_status=task.status.value,
                target_status=TaskStatus.SUBMITTED.value,
            )

        patch: Dict[str, Any] = {"files": files, "status": TaskStatus.SUBMITTED}
        if notes:
            patch["notes"] = notes

        new_order_status = None
        if task.kind == TaskKind.DESIGN and order.status in DESIGN_UPLOAD_ADVANCES_FROM:
            new_order_status = OrderStatus.DESIGN_REVIEW

        updated_task = self._tasks.update(task.id, patch)
        updated_order = order
        if new_order_status is not None:
            updated_order = self._orders.update(order.id, {"status": new_order_status})

        event = self._emit(
            task_event_type(task.kind, TaskStatus.SUBMITTED),
            order=updated_order,
            task=updated_task,
            actor=actor,
            notes=notes,
            detail={
                "from_status": task.status.value,
                "to_status": TaskStatus.SUBMITTED.value,
                "task_kind": task.kind.value,
                "file_ref": file_ref,
                "trigger": "upload",
                "order_from_status": order.status.value,
                "order_status": updated_order.status.value,
                "order_advanced": new_order_status is not None,
            },
        )
        return TransitionResult(EntityType.TASK, order=updated_order, task=updated_task, event=event)

    def assign_order(
        self,
        order_id: str,
        actor_id: str,
        salesperson_id: Optional[str] = None,
        designer_id: Optional[str] = None,
        manufacturer_id: Optional[str] = None,
    ) -> Order:
        """
        Re-assign staff on an order. Status is untouched and no event is emitted.

        Only admins and salespeople may re-assign; each assignee must hold the
        matching role.
        """
        actor = self._require_actor(actor_id)
        order = self._require_order(order_id)

        if not self._grants(actor, order, None) & REVIEWERS:
            raise InvalidTransition(f"{actor.role.value} may not re-assign orders")
        if order.status.is_terminal:
            raise InvalidTransition(
                f"Cannot re-assign a {order.status.value} order",
                current_status=order.status.value,
            )

        patch: Dict[str, Any] = {}
        for field_name, user_id, role in (
            ("salesperson_id", salesperson_id, Role.SALESPERSON),
            ("designer_id", designer_id, Role.DESIGNER),
            ("manufacturer_id", manufacturer_id, Role.MANUFACTURER),
        ):
            if user_id is None:
                continue
            user = self._users.get_user(user_id)
            if user is None or user.role != role:
                raise InvalidTransition(f"{field_name} must reference a {role.value}")
            patch[field_name] = user_id

        if not patch:
            return order

        updated = self._orders.update(order.id, patch)
        logger.info(f"Order {order.id} re-assigned by {actor.id}: {sorted(patch)}")
        return updated

    def assign_task(self, task_id: str, actor_id: str, assignee_id: str) -> Task:
        """Re-assign a non-terminal task. No event is emitted."""
        actor = self._require_actor(actor_id)
        task = self._require_task(task_id)
        order = self._require_order(task.order_id)

        if not self._grants(actor, order, task) & REVIEWERS:
            raise InvalidTransition(f"{actor.role.value} may not re-assign tasks")
        if task.status.is_terminal:
            raise InvalidTransition(
                f"Cannot re-assign a {task.status.value} task",
                current_status=task.status.value,
            )

        expected = Role.DESIGNER if task.kind == TaskKind.DESIGN else Role.MANUFACTURER
        assignee = self._users.get_user(assignee_id)
        if assignee is None or assignee.role != expected:
            raise InvalidTransition(f"{task.kind.value} tasks must be assigned to a {expected.value}")

        return self._tasks.update(task.id, {"assignee_id": assignee_id})

    # =========================================================================
    # ORDER TRANSITIONS
    # =========================================================================

    def _transition_order(
        self,
        order: Order,
        target: OrderStatus,
        actor: User,
        notes: Optional[str],
    ) -> TransitionResult:
        current = order.status

        if not can_transition_order(current, target):
            raise InvalidTransition(
                f"Invalid order transition: {current.value} -> {target.value}",
                current_status=current.value,
                target_status=target.value,
            )

        self._check_permission(
            order_permission(current, target),
            self._grants(actor, order, None),
            actor, current.value, target.value,
        )

        if target == OrderStatus.DESIGN_APPROVED and not self._has_approved_design(order.id):
            raise InvalidTransition(
                "Order cannot be design_approved without an approved design task",
                current_status=current.value,
                target_status=target.value,
            )

        updated = self._orders.update(order.id, {"status": target})

        event = self._emit(
            EventType.ORDER_STATUS_CHANGED,
            order=updated,
            task=None,
            actor=actor,
            notes=notes,
            detail={
                "from_status": current.value,
                "to_status": target.value,
                "order_status": target.value,
            },
        )
        return TransitionResult(EntityType.ORDER, order=updated, event=event)

    def _has_approved_design(self, order_id: str) -> bool:
        return any(
            t.kind == TaskKind.DESIGN and t.status in APPROVED_DESIGN_STATUSES
            for t in self._tasks.list_for_order(order_id)
        )

    # =========================================================================
    # TASK TRANSITIONS
    # =========================================================================

    def _transition_task(
        self,
        task: Task,
        target: TaskStatus,
        actor: User,
        notes: Optional[str],
    ) -> TransitionResult:
        current = task.status
        order = self._require_order(task.order_id)

        if not can_transition_task(current, target):
            raise InvalidTransition(
                f"Invalid task transition: {current.value} -> {target.value}",
                current_status=current.value,
                target_status=target.value,
            )

        self._check_permission(
            task_permission(current, target),
            self._grants(actor, order, task),
            actor, current.value, target.value,
        )

        patch: Dict[str, Any] = {"status": target}
        if target == TaskStatus.REJECTED:
            patch["status"] = REJECTED_TASK_STORED_AS
            patch["rejection_notes"] = notes
        elif notes:
            patch["notes"] = notes

        new_order_status = None
        if (
            target == TaskStatus.APPROVED
            and task.kind == TaskKind.DESIGN
            and order.status == OrderStatus.DESIGN_REVIEW
        ):
            new_order_status = OrderStatus.DESIGN_APPROVED

        updated_task = self._tasks.update(task.id, patch)
        updated_order = order
        if new_order_status is not None:
            updated_order = self._orders.update(order.id, {"status": new_order_status})
            logger.info(f"Order {order.id} advanced to design_approved by task {task.id}")

        event = self._emit(
            task_event_type(task.kind, target),
            order=updated_order,
            task=updated_task,
            actor=actor,
            notes=notes,
            detail={
                "from_status": current.value,
                "to_status": target.value,
                "stored_status": updated_task.status.value,
                "task_kind": task.kind.value,
                "order_from_status": order.status.value,
                "order_status": updated_order.status.value,
                "order_advanced": new_order_status is not None,
            },
        )
        return TransitionResult(EntityType.TASK, order=updated_order, task=updated_task, event=event)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _grants(self, actor: User, order: Order, task: Optional[Task]) -> Set[Actor]:
        grants = set(ROLE_GRANTS.get(actor.role, frozenset()))
        if task is not None and task.assignee_id == actor.id:
            grants.add(Actor.ASSIGNEE)
        if actor.role == Role.DESIGNER and order.designer_id == actor.id:
            grants.add(Actor.ORDER_DESIGNER)
        if actor.role == Role.MANUFACTURER and order.manufacturer_id == actor.id:
            grants.add(Actor.ORDER_MANUFACTURER)
        return grants

    @staticmethod
    def _check_permission(allowed, grants, actor: User, current: str, target: str) -> None:
        if not allowed & grants:
            raise InvalidTransition(
                f"{actor.role.value} {actor.id} may not move {current} -> {target}",
                current_status=current,
                target_status=target,
            )

    @staticmethod
    def _parse_status(enum_cls, value, current: str):
        try:
            return enum_cls(value)
        except ValueError:
            raise InvalidTransition(
                f"Unknown status: {value}",
                current_status=current,
                target_status=str(value),
            )

    def _require_actor(self, actor_id: str) -> User:
        actor = self._users.get_user(actor_id)
        if actor is None:
            raise InvalidTransition(f"Unknown actor: {actor_id}")
        return actor

    def _require_order(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise EntityNotFound("order", order_id)
        return order

    def _require_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise EntityNotFound("task", task_id)
        return task

    def _emit(
        self,
        event_type: EventType,
        order: Order,
        task: Optional[Task],
        actor: User,
        notes: Optional[str],
        detail: Dict[str, Any],
    ) -> WorkflowEvent:
        metadata = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            metadata["correlation_id"] = correlation_id

        event = WorkflowEvent(
            event_type=event_type,
            order_id=order.id,
            task_id=task.id if task else None,
            actor_id=actor.id,
            notes=notes,
            detail=detail,
            metadata=metadata,
        )
        logger.info(
            f"Transition accepted: {event_type.value} order={order.id} "
            f"task={event.task_id} actor={actor.id}"
        )
        self._event_bus.publish(event)
        return event
