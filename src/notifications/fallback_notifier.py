"""
Fallback Notifier

Emails a notification to a recipient who had no live connection when it
was routed. Each message or notification is emailed at most once:

- Direct messages claim the email_fallback_used flag on the Message record
  through the message store's compare-and-set.
- Workflow notifications claim their own fallback_sent flag, flipped under
  this notifier's lock.

The claim happens before the send and is never released. A provider
failure is logged and not retried.
"""

import asyncio
import html
import logging
import threading
from typing import Optional

from config.settings import EmailSettings
from domain.aggregates import User
from domain.repositories import IMessageStore

from .email_provider import (
    DeliveryResult,
    EmailMessage,
    EmailProvider,
    get_email_provider,
)
from .models import Notification, NotificationKind

logger = logging.getLogger(__name__)


class FallbackNotifier:
    """Composes and dispatches fallback emails."""

    def __init__(
        self,
        provider: Optional[EmailProvider] = None,
        message_store: Optional[IMessageStore] = None,
        settings: Optional[EmailSettings] = None,
    ):
        self._provider = provider
        self._message_store = message_store
        self._settings = settings or EmailSettings()
        self._lock = threading.Lock()

    @property
    def provider(self) -> EmailProvider:
        return self._provider or get_email_provider()

    async def notify(self, recipient: User, notification: Notification) -> Optional[DeliveryResult]:
        """
        Email the notification to the recipient.

        Returns:
            The provider's DeliveryResult, or None when the fallback was
            already used for this message/notification or the recipient has
            no email address.
        """
        if not recipient.email:
            logger.warning(f"Fallback skipped: user {recipient.id} has no email address")
            return None

        if not self._claim(notification):
            logger.debug(f"Fallback already used for {self._claim_key(notification)}")
            return None

        email = self.build_email(recipient, notification)

        try:
            result = await asyncio.to_thread(self.provider.send, email)
        except Exception as e:
            logger.error(f"Fallback email to {recipient.email} failed: {e}", exc_info=True)
            return DeliveryResult.failed(self.provider.provider_name, "SEND_ERROR", str(e))

        if result.success:
            logger.info(
                f"Fallback email sent to {recipient.email} "
                f"({notification.kind.value}, id={self._claim_key(notification)})"
            )
        else:
            logger.error(
                f"Fallback email to {recipient.email} failed: "
                f"{result.error_message} (not retried)"
            )
        return result

    def _claim_key(self, notification: Notification) -> str:
        return notification.message_id or notification.id

    def _claim(self, notification: Notification) -> bool:
        """Flip the fallback marker false -> true. Only one caller wins."""
        if notification.message_id and self._message_store is not None:
            claimed = self._message_store.mark_email_sent(notification.message_id)
            if claimed:
                notification.fallback_sent = True
            return claimed

        with self._lock:
            if notification.fallback_sent:
                return False
            notification.fallback_sent = True
            return True

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    def build_email(self, recipient: User, notification: Notification) -> EmailMessage:
        if notification.kind == NotificationKind.NEW_MESSAGE:
            return self._message_email(recipient, notification)
        return self._notification_email(recipient, notification)

    def _message_email(self, recipient: User, notification: Notification) -> EmailMessage:
        sender_name = notification.detail.get("sender_name") or "a ThreadCraft user"
        content = notification.detail.get("content", notification.message)

        body_text = (
            f"You have a new message from {sender_name}:\n\n"
            f"{content}\n\n"
            f"Log in to the system to reply."
        )
        body_html = f"""
<p>You have a new message from {html.escape(sender_name)}:</p>
<blockquote>{html.escape(content)}</blockquote>
<p>Log in to the system to reply.</p>
        """

        return EmailMessage(
            to=recipient.email,
            subject=f"New message from {sender_name}",
            body_text=body_text,
            body_html=body_html,
            from_email=self._settings.from_email,
            from_name=self._settings.from_name,
            tags=["new_message"],
            metadata={"message_id": notification.message_id},
        )

    def _notification_email(self, recipient: User, notification: Notification) -> EmailMessage:
        link = notification.link or self._settings.base_url
        greeting = recipient.first_name or recipient.display_name

        body_text = f"""
Hello {greeting},

{notification.message}

View it here: {link}

Thank you,
{self._settings.from_name}
        """.strip()

        body_html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #4f46e5;">{html.escape(notification.title)}</h2>
    <p>Hello {html.escape(greeting)},</p>
    <p>{html.escape(notification.message)}</p>
    <p><a href="{html.escape(link)}">View in ThreadCraft</a></p>
    <p>Thank you,<br>{html.escape(self._settings.from_name)}</p>
</div>
        """

        return EmailMessage(
            to=recipient.email,
            subject=notification.title,
            body_text=body_text,
            body_html=body_html,
            from_email=self._settings.from_email,
            from_name=self._settings.from_name,
            tags=[notification.event_type or "notification"],
            metadata={
                "notification_id": notification.id,
                "order_id": notification.order_id,
                "task_id": notification.task_id,
            },
        )
