"""
In-memory repository implementations.

Thread-safe but not persistent - data lost on restart. Used by the
development server and the test suite.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Any

from .aggregates import Order, Task, User, Message
from .repositories import IOrderRepository, ITaskRepository, IUserDirectory, IMessageStore


def _apply_patch(entity, patch: Dict[str, Any]):
    values = dict(patch)
    if "updated_at" in type(entity).model_fields:
        values.setdefault("updated_at", datetime.utcnow())
    return entity.model_copy(update=values)


class InMemoryOrderRepository(IOrderRepository):

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            return self._orders.get(order_id)

    def add(self, order: Order) -> Order:
        with self._lock:
            self._orders[order.id] = order
        return order

    def update(self, order_id: str, patch: Dict[str, Any]) -> Order:
        with self._lock:
            order = _apply_patch(self._orders[order_id], patch)
            self._orders[order_id] = order
            return order


class InMemoryTaskRepository(ITaskRepository):

    def __init__(self):
        self._tasks: Dict[str, Task] = {}
        self._lock = threading.Lock()

    def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return self._tasks.get(task_id)

    def add(self, task: Task) -> Task:
        with self._lock:
            self._tasks[task.id] = task
        return task

    def update(self, task_id: str, patch: Dict[str, Any]) -> Task:
        with self._lock:
            task = _apply_patch(self._tasks[task_id], patch)
            self._tasks[task_id] = task
            return task

    def list_for_order(self, order_id: str) -> List[Task]:
        with self._lock:
            tasks = [t for t in self._tasks.values() if t.order_id == order_id]
        return sorted(tasks, key=lambda t: t.created_at)


class InMemoryUserDirectory(IUserDirectory):

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def add(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user
        return user


class InMemoryMessageStore(IMessageStore):

    def __init__(self):
        self._messages: Dict[str, Message] = {}
        self._lock = threading.Lock()

    def create(self, message: Message) -> Message:
        with self._lock:
            self._messages[message.id] = message
        return message

    def get(self, message_id: str) -> Optional[Message]:
        with self._lock:
            return self._messages.get(message_id)

    def update(self, message_id: str, patch: Dict[str, Any]) -> Message:
        if patch.get("email_fallback_used") is False:
            raise ValueError("email_fallback_used cannot be reset")
        with self._lock:
            message = _apply_patch(self._messages[message_id], patch)
            self._messages[message_id] = message
            return message

    def mark_email_sent(self, message_id: str) -> bool:
        with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.email_fallback_used:
                return False
            self._messages[message_id] = message.model_copy(
                update={"email_fallback_used": True}
            )
            return True
