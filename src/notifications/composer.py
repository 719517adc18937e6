"""
Notification Composer

Maps a workflow event plus its order/task context to the list of
(recipient_id, Notification) pairs that should be delivered. Pure: no I/O
beyond directory lookups and no delivery. The router performs delivery.

Recipient table:
    design_submitted      -> order salesperson, order customer
    design_approved       -> task designer
    design_rejected       -> task designer (rejection notes included verbatim)
    production_submitted  -> order salesperson
    production_approved   -> task manufacturer
    production_rejected   -> task manufacturer (rejection notes included verbatim)
    task_status_changed   -> order salesperson
    order_status_changed  -> order customer
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from domain.aggregates import Order, Task
from domain.events import EventType, WorkflowEvent
from domain.repositories import IUserDirectory
from domain.value_objects import OrderStatus, TaskStatus

from .models import Notification

logger = logging.getLogger(__name__)

NO_FEEDBACK = "No feedback provided"


class Recipient(str, Enum):
    """Who, relative to the event's order/task, receives a notification."""
    ORDER_CUSTOMER = "order_customer"
    ORDER_SALESPERSON = "order_salesperson"
    ORDER_DESIGNER = "order_designer"
    ORDER_MANUFACTURER = "order_manufacturer"
    TASK_ASSIGNEE = "task_assignee"


RECIPIENTS: Dict[EventType, Tuple[Recipient, ...]] = {
    EventType.DESIGN_SUBMITTED: (Recipient.ORDER_SALESPERSON, Recipient.ORDER_CUSTOMER),
    EventType.DESIGN_APPROVED: (Recipient.TASK_ASSIGNEE,),
    EventType.DESIGN_REJECTED: (Recipient.TASK_ASSIGNEE,),
    EventType.PRODUCTION_SUBMITTED: (Recipient.ORDER_SALESPERSON,),
    EventType.PRODUCTION_APPROVED: (Recipient.TASK_ASSIGNEE,),
    EventType.PRODUCTION_REJECTED: (Recipient.TASK_ASSIGNEE,),
    EventType.TASK_STATUS_CHANGED: (Recipient.ORDER_SALESPERSON,),
    EventType.ORDER_STATUS_CHANGED: (Recipient.ORDER_CUSTOMER,),
}


def _order_label(order: Order) -> str:
    return f"#{order.order_number}" if order.order_number else order.id


def _status_label(value: Optional[str]) -> str:
    if not value:
        return "Unknown"
    for enum_cls in (OrderStatus, TaskStatus):
        try:
            return enum_cls(value).display_name
        except ValueError:
            continue
    return value.replace("_", " ").title()


def _rejection_text(event: WorkflowEvent) -> str:
    return event.notes if event.notes else NO_FEEDBACK


# Each template returns (title, message)
Template = Callable[[WorkflowEvent, Order, Optional[Task]], Tuple[str, str]]

TEMPLATES: Dict[EventType, Template] = {
    EventType.DESIGN_SUBMITTED: lambda e, o, t: (
        "Design Submitted",
        f"A new design is ready for your review on order {_order_label(o)}",
    ),
    EventType.DESIGN_APPROVED: lambda e, o, t: (
        "Design Approved",
        f"Your design has been approved! (order {_order_label(o)})",
    ),
    EventType.DESIGN_REJECTED: lambda e, o, t: (
        "Design Needs Revision",
        f"Your design needs revisions: {_rejection_text(e)}",
    ),
    EventType.PRODUCTION_SUBMITTED: lambda e, o, t: (
        "Production Submitted",
        f"Production work is ready for your review on order {_order_label(o)}",
    ),
    EventType.PRODUCTION_APPROVED: lambda e, o, t: (
        "Production Approved",
        f"Your production work has been approved! (order {_order_label(o)})",
    ),
    EventType.PRODUCTION_REJECTED: lambda e, o, t: (
        "Production Needs Revision",
        f"Your production work needs revisions: {_rejection_text(e)}",
    ),
    EventType.TASK_STATUS_CHANGED: lambda e, o, t: (
        "Task Updated",
        f"A {t.kind.value if t else 'work'} task on order {_order_label(o)} "
        f"is now {_status_label(e.to_status)}",
    ),
    EventType.ORDER_STATUS_CHANGED: lambda e, o, t: (
        "Order Status Updated",
        f"Order {_order_label(o)} status is now {_status_label(e.order_status)}",
    ),
}


class NotificationComposer:
    """
    Expands a workflow event into per-recipient notifications.

    Recipients that are unset on the order/task or absent from the user
    directory are skipped. A user addressed twice gets one notification.
    """

    def __init__(self, link_base: str = ""):
        self._link_base = link_base.rstrip("/")

    def compose(
        self,
        event: WorkflowEvent,
        order: Order,
        task: Optional[Task],
        directory: IUserDirectory,
    ) -> List[Tuple[str, Notification]]:
        rules = RECIPIENTS.get(event.event_type, ())
        template = TEMPLATES.get(event.event_type)
        if not rules or template is None:
            logger.debug(f"No notification rule for {event.event_type.value}")
            return []

        title, message = template(event, order, task)
        pairs: List[Tuple[str, Notification]] = []
        seen = set()

        for rule in rules:
            recipient_id = self._resolve(rule, order, task)
            if not recipient_id or recipient_id in seen:
                continue
            if directory.get_user(recipient_id) is None:
                logger.warning(
                    f"Skipping unknown recipient {recipient_id} for {event.event_type.value}"
                )
                continue
            seen.add(recipient_id)
            pairs.append((recipient_id, Notification(
                recipient_id=recipient_id,
                title=title,
                message=message,
                event_type=event.event_type.value,
                order_id=order.id,
                task_id=task.id if task else None,
                link=self._link(order),
                detail={
                    "event_id": str(event.event_id),
                    "actor_id": event.actor_id,
                    "notes": event.notes,
                    **event.detail,
                },
            )))

        return pairs

    def _link(self, order: Order) -> Optional[str]:
        if not self._link_base:
            return None
        return f"{self._link_base}/orders/{order.id}"

    @staticmethod
    def _resolve(rule: Recipient, order: Order, task: Optional[Task]) -> Optional[str]:
        if rule == Recipient.ORDER_CUSTOMER:
            return order.customer_id
        if rule == Recipient.ORDER_SALESPERSON:
            return order.salesperson_id
        if rule == Recipient.ORDER_DESIGNER:
            return order.designer_id
        if rule == Recipient.ORDER_MANUFACTURER:
            return order.manufacturer_id
        if rule == Recipient.TASK_ASSIGNEE:
            return task.assignee_id if task else None
        return None
