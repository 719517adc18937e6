"""Pytest configuration and fixtures for test suite."""

import os
import sys
from pathlib import Path
from typing import Any, List

import pytest

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-threadcraft-suite-0123456789")
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("SMTP_HOST", None)

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from config.settings import get_settings
from domain.aggregates import Order, Task, User
from domain.event_bus import EventBus
from domain.memory import (
    InMemoryMessageStore,
    InMemoryOrderRepository,
    InMemoryTaskRepository,
    InMemoryUserDirectory,
)
from domain.value_objects import OrderStatus, TaskKind, TaskStatus
from notifications.email_provider import NullEmailProvider, set_email_provider
from rbac.jwt import reset_jwt_secret
from rbac.roles import Role
from workflow.engine import WorkflowEngine

from fakes import FakeWebSocket


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset cached settings, JWT secret and email provider around each test."""
    get_settings.cache_clear()
    reset_jwt_secret()
    set_email_provider(None)
    yield
    get_settings.cache_clear()
    reset_jwt_secret()
    set_email_provider(None)


# =============================================================================
# USERS
# =============================================================================

@pytest.fixture
def admin():
    return User(id="admin-1", role=Role.ADMIN, email="admin@threadcraft.test", first_name="Ada")


@pytest.fixture
def salesperson():
    return User(
        id="sales-1", role=Role.SALESPERSON, email="sam@threadcraft.test",
        first_name="Sam", last_name="Seller",
    )


@pytest.fixture
def designer():
    return User(
        id="designer-1", role=Role.DESIGNER, email="dana@threadcraft.test",
        first_name="Dana", last_name="Draper",
    )


@pytest.fixture
def manufacturer():
    return User(
        id="maker-1", role=Role.MANUFACTURER, email="mo@threadcraft.test",
        first_name="Mo", last_name="Maker",
    )


@pytest.fixture
def customer():
    return User(
        id="customer-1", role=Role.CUSTOMER, email="casey@example.com",
        first_name="Casey", last_name="Client",
    )


@pytest.fixture
def directory(admin, salesperson, designer, manufacturer, customer):
    directory = InMemoryUserDirectory()
    for user in (admin, salesperson, designer, manufacturer, customer):
        directory.add(user)
    return directory


# =============================================================================
# ORDERS AND TASKS
# =============================================================================

@pytest.fixture
def orders():
    return InMemoryOrderRepository()


@pytest.fixture
def tasks():
    return InMemoryTaskRepository()


@pytest.fixture
def message_store():
    return InMemoryMessageStore()


@pytest.fixture
def order(orders, salesperson, designer, manufacturer, customer):
    return orders.add(Order(
        id="order-1",
        order_number="1001",
        status=OrderStatus.PENDING_DESIGN,
        customer_id=customer.id,
        salesperson_id=salesperson.id,
        designer_id=designer.id,
        manufacturer_id=manufacturer.id,
    ))


@pytest.fixture
def design_task(tasks, order, designer):
    return tasks.add(Task(
        id="task-design-1",
        order_id=order.id,
        kind=TaskKind.DESIGN,
        assignee_id=designer.id,
        status=TaskStatus.PENDING,
        description="Team jersey artwork",
    ))


@pytest.fixture
def production_task(tasks, order, manufacturer):
    return tasks.add(Task(
        id="task-production-1",
        order_id=order.id,
        kind=TaskKind.PRODUCTION,
        assignee_id=manufacturer.id,
        status=TaskStatus.PENDING,
        description="Print 40 jerseys",
    ))


# =============================================================================
# ENGINE
# =============================================================================

@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published_events(event_bus) -> List[Any]:
    """Every event published on the bus, in order."""
    events: List[Any] = []
    event_bus.subscribe_all(events.append)
    return events


@pytest.fixture
def engine(orders, tasks, directory, event_bus):
    return WorkflowEngine(orders, tasks, directory, event_bus)


# =============================================================================
# DELIVERY
# =============================================================================

@pytest.fixture
def email_provider():
    return NullEmailProvider()


@pytest.fixture
def fake_websocket():
    return FakeWebSocket()


@pytest.fixture
def broken_websocket():
    return FakeWebSocket(fail=True)


@pytest.fixture
def services(orders, tasks, directory, message_store, email_provider):
    from services.container import build_services
    return build_services(
        settings=get_settings(),
        email_provider=email_provider,
        orders=orders,
        tasks=tasks,
        users=directory,
        messages=message_store,
    )
