"""
SendGrid Email Provider

Configuration:
    SENDGRID_API_KEY: API key (required)
    SENDGRID_FROM_EMAIL: Sender address (falls back to EMAIL_FROM_EMAIL)
    SENDGRID_FROM_NAME: Sender name (falls back to EMAIL_FROM_NAME)
"""

import logging
import os
from typing import Optional

from config.settings import EmailSettings
from .email_provider import (
    EmailProvider,
    EmailMessage,
    DeliveryResult,
    DeliveryStatus,
)

logger = logging.getLogger(__name__)

# SendGrid accepts at most 10 categories per mail
MAX_CATEGORIES = 10
ACCEPTED_STATUS_CODES = (200, 201, 202)


class SendGridProvider(EmailProvider):

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        client=None,
    ):
        defaults = EmailSettings()
        self.api_key = api_key or os.environ.get("SENDGRID_API_KEY")
        self.from_email = from_email or os.environ.get("SENDGRID_FROM_EMAIL") or defaults.from_email
        self.from_name = from_name or os.environ.get("SENDGRID_FROM_NAME") or defaults.from_name
        # Injected by tests; built lazily otherwise
        self._client = client

    @property
    def provider_name(self) -> str:
        return "sendgrid"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self):
        if self._client is None:
            from sendgrid import SendGridAPIClient
            self._client = SendGridAPIClient(api_key=self.api_key)
        return self._client

    def build_mail(self, message: EmailMessage):
        """Translate an EmailMessage into a SendGrid Mail."""
        from sendgrid.helpers.mail import (
            Category, Content, CustomArg, Email, Header, Mail, Personalization, ReplyTo, To,
        )

        mail = Mail()
        mail.from_email = Email(
            message.from_email or self.from_email,
            message.from_name or self.from_name,
        )
        mail.subject = message.subject

        personalization = Personalization()
        personalization.add_to(To(message.to))
        for key, value in message.metadata.items():
            if value is not None:
                personalization.add_custom_arg(CustomArg(key, str(value)))
        mail.add_personalization(personalization)

        if message.body_text:
            mail.add_content(Content("text/plain", message.body_text))
        if message.body_html:
            mail.add_content(Content("text/html", message.body_html))
        if message.reply_to:
            mail.reply_to = ReplyTo(message.reply_to)
        for key, value in message.headers.items():
            mail.add_header(Header(key, value))
        for tag in message.tags[:MAX_CATEGORIES]:
            mail.add_category(Category(tag))

        return mail

    def send(self, message: EmailMessage) -> DeliveryResult:
        if not self.is_configured():
            return DeliveryResult.failed(
                self.provider_name, "NOT_CONFIGURED", "SendGrid API key not configured",
            )

        message.validate()

        try:
            response = self.client.send(self.build_mail(message))
        except Exception as e:
            logger.exception(f"SendGrid send to {message.to} failed: {e}")
            return DeliveryResult.failed(self.provider_name, "SEND_ERROR", str(e))

        if response.status_code not in ACCEPTED_STATUS_CODES:
            logger.error(f"SendGrid rejected email to {message.to}: HTTP {response.status_code}")
            return DeliveryResult.failed(
                self.provider_name,
                str(response.status_code),
                f"SendGrid returned status {response.status_code}",
            )

        message_id = response.headers.get("X-Message-Id", "")
        logger.info(f"SendGrid: email sent to {message.to}, message_id={message_id}")
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            message_id=message_id,
            provider=self.provider_name,
        )
