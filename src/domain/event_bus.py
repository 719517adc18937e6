"""
Event Bus implementation.

In-process publication of workflow events. The engine publishes every
accepted transition here; the audit logger is the standing subscriber.
Notification delivery is driven by the services layer, not the bus, so
HTTP callers can await it.
"""

import logging
from typing import Callable, Dict, List, Optional

from .events import DomainEvent, EventType


logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


# =============================================================================
# EVENT BUS
# =============================================================================

class EventBus:
    """
    Synchronous in-process event bus.

    Handlers are keyed by EventType; global handlers receive everything.
    A failing handler is logged and never affects other handlers or the
    publisher.
    """

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def publish(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(event.event_type, []) + self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Handler {getattr(handler, '__qualname__', handler)} failed "
                    f"on {event.event_type.value}: {e}",
                    exc_info=True,
                )

    def clear(self) -> None:
        self._handlers.clear()
        self._global_handlers.clear()


class LoggingEventHandler:
    """Writes one audit line per accepted transition."""

    def __init__(self, logger_name: str = "domain.events"):
        self._logger = logging.getLogger(logger_name)

    def handle(self, event: DomainEvent) -> None:
        order_id = getattr(event, "order_id", None)
        task_id = getattr(event, "task_id", None)
        from_status = getattr(event, "from_status", None)
        to_status = getattr(event, "to_status", None)
        self._logger.info(
            f"Event: {event.event_type.value} order={order_id} task={task_id} "
            f"{from_status} -> {to_status}",
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type.value,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )


_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Process-wide bus for engines built without an explicit one."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus
