"""
Service Container - Wires the workflow and delivery core together.

Holds one instance of each collaborator for the lifetime of an app.
Tests build a fresh container per test instead of resetting globals.

Usage:
    services = build_services()
    app.state.services = services

    await services.workflow.request_transition("task", task_id, "approved", actor_id)
"""

import logging
from dataclasses import dataclass
from typing import Optional

from config.settings import Settings, get_settings
from domain.event_bus import EventBus, LoggingEventHandler
from domain.memory import (
    InMemoryMessageStore,
    InMemoryOrderRepository,
    InMemoryTaskRepository,
    InMemoryUserDirectory,
)
from domain.repositories import IMessageStore, IOrderRepository, ITaskRepository, IUserDirectory
from notifications.composer import NotificationComposer
from notifications.email_provider import EmailProvider
from notifications.fallback_notifier import FallbackNotifier
from realtime.connection_manager import ConnectionManager
from realtime.event_router import EventRouter
from workflow.engine import WorkflowEngine

from .messaging_service import MessagingService
from .workflow_service import WorkflowService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    orders: IOrderRepository
    tasks: ITaskRepository
    users: IUserDirectory
    messages: IMessageStore
    event_bus: EventBus
    connections: ConnectionManager
    fallback: FallbackNotifier
    router: EventRouter
    engine: WorkflowEngine
    workflow: WorkflowService
    messaging: MessagingService


def build_services(
    settings: Optional[Settings] = None,
    email_provider: Optional[EmailProvider] = None,
    orders: Optional[IOrderRepository] = None,
    tasks: Optional[ITaskRepository] = None,
    users: Optional[IUserDirectory] = None,
    messages: Optional[IMessageStore] = None,
) -> ServiceContainer:
    """
    Build a container. Repositories default to the in-memory implementations;
    the email provider defaults to the one selected from the environment.
    """
    settings = settings or get_settings()
    orders = orders or InMemoryOrderRepository()
    tasks = tasks or InMemoryTaskRepository()
    users = users or InMemoryUserDirectory()
    messages = messages or InMemoryMessageStore()

    # Each container gets its own bus so apps built in tests stay isolated
    event_bus = EventBus()
    event_bus.subscribe_all(LoggingEventHandler().handle)

    connections = ConnectionManager()
    fallback = FallbackNotifier(
        provider=email_provider,
        message_store=messages,
        settings=settings.email,
    )
    router = EventRouter(connections, fallback, users)
    engine = WorkflowEngine(orders, tasks, users, event_bus)
    composer = NotificationComposer(link_base=settings.email.base_url)

    logger.debug(f"Services built for environment={settings.environment}")

    return ServiceContainer(
        settings=settings,
        orders=orders,
        tasks=tasks,
        users=users,
        messages=messages,
        event_bus=event_bus,
        connections=connections,
        fallback=fallback,
        router=router,
        engine=engine,
        workflow=WorkflowService(engine, composer, router, users),
        messaging=MessagingService(messages, users, router),
    )
