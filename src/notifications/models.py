"""
Notification Models

Ephemeral, per-recipient payloads produced by the composer (workflow
events) and the messaging service (direct messages). Only the fallback
marker outlives delivery.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4


class NotificationKind(str, Enum):
    """Outbound envelope type a notification is delivered as."""
    NOTIFICATION = "notification"
    NEW_MESSAGE = "new_message"


@dataclass
class Notification:
    """
    A payload addressed to one recipient.

    For direct messages message_id is set and the fallback marker lives on
    the Message record instead of fallback_sent.
    """
    recipient_id: str
    title: str
    message: str
    kind: NotificationKind = NotificationKind.NOTIFICATION
    event_type: Optional[str] = None
    order_id: Optional[str] = None
    task_id: Optional[str] = None
    message_id: Optional[str] = None
    link: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=datetime.utcnow)
    fallback_sent: bool = False

    def to_payload(self) -> Dict[str, Any]:
        """Payload carried inside the outbound envelope.

        new_message envelopes carry the message record itself.
        """
        if self.kind == NotificationKind.NEW_MESSAGE:
            return dict(self.detail)
        return {
            "id": self.id,
            "event_type": self.event_type,
            "title": self.title,
            "message": self.message,
            "order_id": self.order_id,
            "task_id": self.task_id,
            "message_id": self.message_id,
            "link": self.link,
            "detail": self.detail,
            "timestamp": self.created_at.isoformat(),
        }
