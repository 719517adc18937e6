"""
Repository Interfaces for the ThreadCraft order workflow.

Repository interfaces define the contract for the persistence collaborators
the workflow and delivery core depends on. Each call is assumed to apply
atomically; no cross-call transaction is offered.

This abstraction allows:
1. Plugging the application's real datastore in behind the core
2. Testing with in-memory implementations (see domain.memory)
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

from .aggregates import Order, Task, User, Message


class IOrderRepository(ABC):
    """Order persistence contract."""

    @abstractmethod
    def get(self, order_id: str) -> Optional[Order]:
        """
        Retrieve an order by ID.

        Returns:
            The order if found, None otherwise
        """
        pass

    @abstractmethod
    def add(self, order: Order) -> Order:
        """Store a new order."""
        pass

    @abstractmethod
    def update(self, order_id: str, patch: Dict[str, Any]) -> Order:
        """
        Apply a partial update atomically.

        Raises:
            KeyError: order does not exist
        """
        pass


class ITaskRepository(ABC):
    """Design/production task persistence contract."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[Task]:
        pass

    @abstractmethod
    def add(self, task: Task) -> Task:
        pass

    @abstractmethod
    def update(self, task_id: str, patch: Dict[str, Any]) -> Task:
        """
        Apply a partial update atomically.

        Raises:
            KeyError: task does not exist
        """
        pass

    @abstractmethod
    def list_for_order(self, order_id: str) -> List[Task]:
        """All tasks belonging to an order, oldest first."""
        pass


class IUserDirectory(ABC):
    """Resolves user ids to role and contact information."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def add(self, user: User) -> User:
        pass


class IMessageStore(ABC):
    """Direct message persistence contract."""

    @abstractmethod
    def create(self, message: Message) -> Message:
        pass

    @abstractmethod
    def get(self, message_id: str) -> Optional[Message]:
        pass

    @abstractmethod
    def update(self, message_id: str, patch: Dict[str, Any]) -> Message:
        pass

    @abstractmethod
    def mark_email_sent(self, message_id: str) -> bool:
        """
        Set email_fallback_used if it is not already set.

        Must be a compare-and-set: returns True only for the caller that
        flipped the flag from False to True. The flag is never reset.
        """
        pass
