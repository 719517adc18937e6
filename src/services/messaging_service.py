"""
Messaging Service - Direct user-to-user messages.

A message is persisted first, then pushed as a new_message envelope to
every live connection of the receiver. When the receiver is offline the
fallback notifier emails them once, claiming the message's
email_fallback_used flag on the store.
"""

import logging
from datetime import datetime
from typing import Optional

from domain.aggregates import Message, User
from domain.repositories import IMessageStore, IUserDirectory
from domain.value_objects import MessageStatus
from notifications.models import Notification, NotificationKind
from realtime.event_router import DeliveryOutcome, EventRouter
from workflow.exceptions import EntityNotFound, InvalidTransition

logger = logging.getLogger(__name__)


class MessagingService:

    def __init__(
        self,
        message_store: IMessageStore,
        directory: IUserDirectory,
        router: EventRouter,
    ):
        self.messages = message_store
        self.directory = directory
        self.router = router

    async def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        order_id: Optional[str] = None,
        task_id: Optional[str] = None,
        subject: str = "",
    ) -> Message:
        """
        Persist and deliver a message.

        Returns:
            The stored message, status delivered when a live connection
            accepted it, otherwise sent (with email_fallback_used set when
            the fallback email was claimed).

        Raises:
            ValueError: empty content or a message to oneself
            EntityNotFound: unknown sender or receiver
        """
        if not content or not content.strip():
            raise ValueError("Message content is required")
        if sender_id == receiver_id:
            raise ValueError("Cannot send a message to yourself")

        sender = self._require_user(sender_id)
        self._require_user(receiver_id)

        message = self.messages.create(Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            subject=subject,
            content=content,
            order_id=order_id,
            task_id=task_id,
        ))

        notification = self._notification_for(message, sender)

        try:
            outcome = await self.router.route(receiver_id, notification)
        except Exception as e:
            logger.error(f"Delivery of message {message.id} failed: {e}", exc_info=True)
            return self.messages.get(message.id) or message

        if outcome == DeliveryOutcome.DELIVERED:
            return self.messages.update(message.id, {"status": MessageStatus.DELIVERED})

        logger.info(f"Receiver {receiver_id} offline; message {message.id} routed to fallback")
        return self.messages.get(message.id) or message

    def mark_read(self, message_id: str, reader_id: str) -> Message:
        """Mark a message read. Only the receiver may do so; repeat calls keep the first read_at."""
        message = self.messages.get(message_id)
        if message is None:
            raise EntityNotFound("message", message_id)
        if message.receiver_id != reader_id:
            raise InvalidTransition(
                "Only the receiver may mark a message as read",
                current_status=message.status.value,
                target_status=MessageStatus.READ.value,
            )
        if message.status == MessageStatus.READ:
            return message
        return self.messages.update(message_id, {
            "status": MessageStatus.READ,
            "read_at": datetime.utcnow(),
        })

    def _require_user(self, user_id: str) -> User:
        user = self.directory.get_user(user_id)
        if user is None:
            raise EntityNotFound("user", user_id)
        return user

    @staticmethod
    def _notification_for(message: Message, sender: User) -> Notification:
        detail = message.to_payload()
        detail["sender_name"] = sender.display_name
        return Notification(
            recipient_id=message.receiver_id,
            title=message.subject or f"New message from {sender.display_name}",
            message=message.content,
            kind=NotificationKind.NEW_MESSAGE,
            order_id=message.order_id,
            task_id=message.task_id,
            message_id=message.id,
            detail=detail,
        )
