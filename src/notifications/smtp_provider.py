"""
SMTP Email Provider

For self-hosted relays or local testing (e.g. MailHog).

Configuration:
    SMTP_HOST: Server hostname (required)
    SMTP_PORT: Server port (default: 587)
    SMTP_USERNAME / SMTP_PASSWORD: Credentials (optional)
    SMTP_USE_TLS: STARTTLS after connecting (default: true)
    SMTP_USE_SSL: Implicit TLS (default: false)
    SMTP_FROM_EMAIL / SMTP_FROM_NAME: Sender (falls back to EMAIL_FROM_*)
"""

import logging
import os
import smtplib
import ssl
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from config.settings import EmailSettings
from .email_provider import (
    EmailProvider,
    EmailMessage,
    DeliveryResult,
    DeliveryStatus,
)

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


def _has_crlf(*values) -> bool:
    return any("\r" in str(v) or "\n" in str(v) for v in values)


class SMTPProvider(EmailProvider):

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        use_ssl: Optional[bool] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        defaults = EmailSettings()
        self.host = host or os.environ.get("SMTP_HOST")
        self.port = port or int(os.environ.get("SMTP_PORT", "587"))
        self.username = username or os.environ.get("SMTP_USERNAME")
        self.password = password or os.environ.get("SMTP_PASSWORD")
        self.use_tls = _env_flag("SMTP_USE_TLS", True) if use_tls is None else use_tls
        self.use_ssl = _env_flag("SMTP_USE_SSL", False) if use_ssl is None else use_ssl
        self.from_email = from_email or os.environ.get("SMTP_FROM_EMAIL") or defaults.from_email
        self.from_name = from_name or os.environ.get("SMTP_FROM_NAME") or defaults.from_name

    @property
    def provider_name(self) -> str:
        return "smtp"

    def is_configured(self) -> bool:
        return bool(self.host)

    def build_mime(self, message: EmailMessage) -> MIMEMultipart:
        """multipart/alternative with a text and/or HTML part."""
        mime = MIMEMultipart("alternative")
        mime["From"] = formataddr((
            message.from_name or self.from_name,
            message.from_email or self.from_email,
        ))
        mime["To"] = message.to
        mime["Subject"] = message.subject
        if message.reply_to:
            mime["Reply-To"] = message.reply_to

        for key, value in message.headers.items():
            # Header injection
            if _has_crlf(key, value):
                logger.warning(f"Dropped email header with CRLF: {key!r}")
                continue
            mime[key] = value

        if message.body_text:
            mime.attach(MIMEText(message.body_text, "plain", "utf-8"))
        if message.body_html:
            mime.attach(MIMEText(message.body_html, "html", "utf-8"))
        return mime

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, context=context)
        else:
            server = smtplib.SMTP(self.host, self.port)
            if self.use_tls:
                server.starttls(context=context)
        if self.username and self.password:
            server.login(self.username, self.password)
        return server

    def send(self, message: EmailMessage) -> DeliveryResult:
        if not self.is_configured():
            return DeliveryResult.failed(
                self.provider_name, "NOT_CONFIGURED", "SMTP not configured (missing SMTP_HOST)",
            )

        message.validate()
        mime = self.build_mime(message)

        try:
            with self._connect() as server:
                server.sendmail(message.from_email or self.from_email, [message.to], mime.as_string())
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP auth error for {self.host}: {e}")
            return DeliveryResult.failed(
                self.provider_name, "AUTH_ERROR", f"SMTP authentication failed: {e}",
            )
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"SMTP refused {message.to}: {e}")
            return DeliveryResult.failed(
                self.provider_name,
                "RECIPIENTS_REFUSED",
                f"Recipients refused: {e}",
                status=DeliveryStatus.BOUNCED,
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error sending to {message.to}: {e}")
            return DeliveryResult.failed(self.provider_name, "SMTP_ERROR", str(e))

        logger.info(f"SMTP: email sent to {message.to}")
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            # SMTP has no provider message id
            message_id=f"smtp-{uuid.uuid4()}",
            provider=self.provider_name,
        )
