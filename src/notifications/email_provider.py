"""
Email Provider Abstraction

Transport used by the fallback notifier when a recipient has no live
connection. One provider is selected per process from the environment:

- SENDGRID_API_KEY -> SendGrid (recommended for production)
- SMTP_HOST        -> SMTP (self-hosted relays, MailHog)
- neither          -> Null (logs only)
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class DeliveryStatus(str, Enum):
    SENT = "sent"
    BOUNCED = "bounced"
    FAILED = "failed"


@dataclass
class EmailMessage:
    """A single outgoing fallback email."""
    to: str
    subject: str
    body_html: Optional[str] = None
    body_text: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    # Categories for provider-side analytics (event type, "new_message")
    tags: List[str] = field(default_factory=list)
    # Correlates the email with the message/notification that caused it
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> bool:
        if not self.to:
            raise ValueError("Recipient email (to) is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.body_html and not self.body_text:
            raise ValueError("Either body_html or body_text is required")
        return True


@dataclass
class DeliveryResult:
    """Outcome of one send attempt. Providers never raise for transport errors."""
    success: bool
    status: DeliveryStatus
    message_id: Optional[str] = None
    provider: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def failed(
        cls,
        provider: str,
        error_code: str,
        error_message: str,
        status: DeliveryStatus = DeliveryStatus.FAILED,
    ) -> "DeliveryResult":
        return cls(
            success=False,
            status=status,
            provider=provider,
            error_message=error_message,
            error_code=error_code,
        )


class EmailProvider(ABC):
    """
    Base class for email providers.

    send() is blocking; async callers run it in a worker thread.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    def send(self, message: EmailMessage) -> DeliveryResult:
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass


class NullEmailProvider(EmailProvider):
    """
    Development provider: logs instead of sending.

    Keeps every message it was given in ``sent`` so tests can assert on them.
    """

    def __init__(self):
        self.sent: List[EmailMessage] = []

    @property
    def provider_name(self) -> str:
        return "null"

    def send(self, message: EmailMessage) -> DeliveryResult:
        message.validate()
        self.sent.append(message)
        logger.info(f"[NULL PROVIDER] Would send email to {message.to}: {message.subject}")
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            message_id=f"null-{len(self.sent)}",
            provider=self.provider_name,
        )

    def is_configured(self) -> bool:
        return True


_email_provider: Optional[EmailProvider] = None


def _select_provider() -> EmailProvider:
    if os.environ.get("SENDGRID_API_KEY"):
        from .sendgrid_provider import SendGridProvider
        return SendGridProvider()

    if os.environ.get("SMTP_HOST"):
        from .smtp_provider import SMTPProvider
        return SMTPProvider()

    logger.warning(
        "No email provider configured; offline recipients will only see "
        "fallback emails in the log. Set SENDGRID_API_KEY or SMTP_HOST."
    )
    return NullEmailProvider()


def get_email_provider() -> EmailProvider:
    """Return the process-wide provider, selecting it on first use."""
    global _email_provider
    if _email_provider is None:
        _email_provider = _select_provider()
        logger.info(f"Email provider: {_email_provider.provider_name}")
    return _email_provider


def set_email_provider(provider: Optional[EmailProvider]):
    """Override the provider (tests). None re-runs selection on next use."""
    global _email_provider
    _email_provider = provider


def send_email(
    to: str,
    subject: str,
    body_text: Optional[str] = None,
    body_html: Optional[str] = None,
    tags: Optional[List[str]] = None,
    provider: Optional[EmailProvider] = None,
) -> DeliveryResult:
    """Send a one-off email through the configured provider."""
    message = EmailMessage(
        to=to,
        subject=subject,
        body_text=body_text,
        body_html=body_html,
        tags=tags or [],
    )
    return (provider or get_email_provider()).send(message)
