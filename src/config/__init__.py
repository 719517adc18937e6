"""Configuration module for the workflow service."""

from .settings import (
    EmailSettings,
    RealtimeSettings,
    Settings,
    StartupSecurityError,
    get_settings,
    validate_startup_security,
)

__all__ = [
    "EmailSettings",
    "RealtimeSettings",
    "Settings",
    "StartupSecurityError",
    "get_settings",
    "validate_startup_security",
]
