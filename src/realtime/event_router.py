"""
Event Router

Delivers a composed notification to one recipient: live push when the
recipient has an open socket, otherwise exactly one fallback email.
The two paths are mutually exclusive per notification.
"""

import logging
from enum import Enum
from typing import Iterable, List, Tuple

from domain.repositories import IUserDirectory
from notifications.fallback_notifier import FallbackNotifier
from notifications.models import Notification, NotificationKind

from .connection_manager import ConnectionManager
from .events import Envelope, EnvelopeType

logger = logging.getLogger(__name__)


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    FALLBACK = "fallback"


_ENVELOPE_TYPES = {
    NotificationKind.NOTIFICATION: EnvelopeType.NOTIFICATION,
    NotificationKind.NEW_MESSAGE: EnvelopeType.NEW_MESSAGE,
}


class EventRouter:
    """Routes notifications to live connections or the fallback notifier."""

    def __init__(
        self,
        connections: ConnectionManager,
        fallback: FallbackNotifier,
        directory: IUserDirectory,
    ):
        self.connections = connections
        self.fallback = fallback
        self.directory = directory

    async def route(self, recipient_id: str, notification: Notification) -> DeliveryOutcome:
        envelope = Envelope(
            type=_ENVELOPE_TYPES[notification.kind],
            payload=notification.to_payload(),
        )

        if await self.connections.broadcast(recipient_id, envelope.to_dict()):
            return DeliveryOutcome.DELIVERED

        recipient = self.directory.get_user(recipient_id)
        if recipient is None:
            logger.warning(f"[WS] No live connection or directory entry for {recipient_id}")
            return DeliveryOutcome.FALLBACK

        await self.fallback.notify(recipient, notification)
        return DeliveryOutcome.FALLBACK

    async def route_many(
        self, pairs: Iterable[Tuple[str, Notification]]
    ) -> List[Tuple[str, DeliveryOutcome]]:
        """Route composer output, one recipient at a time."""
        outcomes = []
        for recipient_id, notification in pairs:
            outcomes.append((recipient_id, await self.route(recipient_id, notification)))
        return outcomes
