"""
Domain layer for the ThreadCraft order workflow.

This module contains the aggregates, status vocabularies, events, the
in-process event bus and the repository interfaces the workflow and
delivery core depend on.
"""

from .value_objects import (
    OrderStatus,
    TaskStatus,
    TaskKind,
    MessageStatus,
    EntityType,
)
from .aggregates import (
    User,
    Order,
    Task,
    Message,
)
from .events import (
    DomainEvent,
    EventType,
    WorkflowEvent,
)
from .repositories import (
    IOrderRepository,
    ITaskRepository,
    IUserDirectory,
    IMessageStore,
)
from .memory import (
    InMemoryOrderRepository,
    InMemoryTaskRepository,
    InMemoryUserDirectory,
    InMemoryMessageStore,
)
from .event_bus import (
    EventBus,
    LoggingEventHandler,
    get_event_bus,
)

__all__ = [
    # Value objects
    "OrderStatus",
    "TaskStatus",
    "TaskKind",
    "MessageStatus",
    "EntityType",
    # Aggregates
    "User",
    "Order",
    "Task",
    "Message",
    # Events
    "DomainEvent",
    "EventType",
    "WorkflowEvent",
    # Repositories
    "IOrderRepository",
    "ITaskRepository",
    "IUserDirectory",
    "IMessageStore",
    "InMemoryOrderRepository",
    "InMemoryTaskRepository",
    "InMemoryUserDirectory",
    "InMemoryMessageStore",
    # Event bus
    "EventBus",
    "LoggingEventHandler",
    "get_event_bus",
]
