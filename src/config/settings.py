"""Application settings using Pydantic Settings.

Centralized configuration for the ThreadCraft workflow service.

SECURITY: Production requires the following environment variables:
- JWT_SECRET: JWT signing key (min 32 chars), used for the WebSocket handshake
- One email provider: SENDGRID_API_KEY or SMTP_HOST

Generate secrets with: python -c "import secrets; print(secrets.token_hex(32))"
"""

import os
import sys
import logging
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RealtimeSettings(BaseSettings):
    """WebSocket delivery configuration."""

    model_config = SettingsConfigDict(
        env_prefix="REALTIME_",
        extra="ignore",
    )

    # Close code sent when the handshake token is missing or invalid (policy violation)
    auth_failure_close_code: int = Field(default=1008, description="WebSocket close code on auth failure")
    max_idle_seconds: int = Field(default=300, description="Idle time before a connection is considered stale")
    allow_dev_tokens: bool = Field(
        default=True,
        description="Accept 'user_id:role' tokens outside production",
    )


class EmailSettings(BaseSettings):
    """Fallback email configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        extra="ignore",
    )

    from_email: str = Field(default="noreply@threadcraft.com", description="Sender address")
    from_name: str = Field(default="ThreadCraft", description="Sender display name")
    base_url: str = Field(default="http://localhost:8000", description="Link target in emails")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="ThreadCraft Workflow", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # CORS
    cors_origins: list = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins"
    )

    # Nested settings (loaded separately)
    @property
    def realtime(self) -> RealtimeSettings:
        return RealtimeSettings()

    @property
    def email(self) -> EmailSettings:
        return EmailSettings()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ("production", "prod", "staging")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "test")

    def validate_production_security(self) -> List[str]:
        """
        Validate security requirements for production.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.is_production:
            return errors

        jwt_secret = os.environ.get("JWT_SECRET")
        if not jwt_secret:
            errors.append(
                "JWT_SECRET: Required in production. "
                "Generate with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
        elif len(jwt_secret) < 32:
            errors.append("JWT_SECRET: Must be at least 32 characters")

        if self.realtime.allow_dev_tokens:
            errors.append("REALTIME_ALLOW_DEV_TOKENS: Must be False in production")

        if not (os.environ.get("SENDGRID_API_KEY") or os.environ.get("SMTP_HOST")):
            errors.append(
                "SENDGRID_API_KEY or SMTP_HOST: An email provider is required "
                "in production for offline notification delivery"
            )

        return errors


# =============================================================================
# STARTUP VALIDATION
# =============================================================================

class StartupSecurityError(Exception):
    """Raised when security validation fails at startup."""
    pass


def validate_startup_security(settings: Settings, exit_on_failure: bool = True) -> bool:
    """
    Validate security settings at application startup.

    In production, fails fast if critical settings are missing.

    Raises:
        StartupSecurityError: If validation fails and exit_on_failure is False
    """
    errors = settings.validate_production_security()

    if not errors:
        if settings.is_production:
            logger.info("Production security validation PASSED")
        return True

    error_msg = "CRITICAL CONFIGURATION ERROR\n"
    for i, err in enumerate(errors, 1):
        error_msg += f"  {i}. {err}\n"

    logger.critical(error_msg)

    if exit_on_failure:
        print(error_msg, file=sys.stderr)
        sys.exit(1)
    raise StartupSecurityError(error_msg)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()
