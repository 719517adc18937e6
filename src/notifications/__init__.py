"""
Notification Delivery

Turns workflow events into per-recipient notifications and emails
recipients who are not connected.

Provides:
- Multi-provider email delivery (SendGrid, SMTP, Null)
- NotificationComposer: event -> (recipient_id, Notification) pairs
- FallbackNotifier: at-most-once email per message/notification

Usage:
    from notifications import NotificationComposer, FallbackNotifier

    pairs = NotificationComposer().compose(event, order, task, directory)
    await FallbackNotifier(message_store=store).notify(recipient, notification)
"""

from .email_provider import (
    EmailProvider,
    EmailMessage,
    DeliveryResult,
    DeliveryStatus,
    NullEmailProvider,
    get_email_provider,
    set_email_provider,
    send_email,
)
from .sendgrid_provider import SendGridProvider
from .smtp_provider import SMTPProvider
from .models import Notification, NotificationKind
from .composer import NotificationComposer, RECIPIENTS, NO_FEEDBACK
from .fallback_notifier import FallbackNotifier

__all__ = [
    # Core interfaces
    "EmailProvider",
    "EmailMessage",
    "DeliveryResult",
    "DeliveryStatus",
    "NullEmailProvider",
    "get_email_provider",
    "set_email_provider",
    "send_email",
    # Providers
    "SendGridProvider",
    "SMTPProvider",
    # Notifications
    "Notification",
    "NotificationKind",
    "NotificationComposer",
    "RECIPIENTS",
    "NO_FEEDBACK",
    "FallbackNotifier",
]
