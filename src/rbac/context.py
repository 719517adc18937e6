"""
ThreadCraft - Authentication Context

AuthContext is the object passed through routes and the WebSocket
handshake describing who the caller is.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt as pyjwt

from config.settings import get_settings
from .jwt import decode_token
from .roles import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """
    Authentication context for the current request or connection.

    Usage:
        @router.post("/orders/{order_id}/transition")
        async def transition(ctx: AuthContext = Depends(require_auth)):
            service.request_transition(..., actor_id=ctx.user_id)
    """

    user_id: str
    role: Optional[Role]
    email: str = ""
    name: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id) and self.role is not None

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls(user_id="", role=None)


class AuthenticationFailure(Exception):
    """Raised when a token cannot be resolved to an identity."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def _dev_tokens_enabled() -> bool:
    settings = get_settings()
    return settings.is_development and settings.realtime.allow_dev_tokens


def resolve_token(token: Optional[str]) -> AuthContext:
    """
    Resolve a bearer token to an AuthContext.

    JWT verification is the production path. Outside production a plain
    ``user_id:role`` token is also accepted when dev tokens are enabled.

    Raises:
        AuthenticationFailure: token missing, invalid, expired, or malformed
    """
    if not token:
        raise AuthenticationFailure("Missing authentication token")

    try:
        payload = decode_token(token)
        return AuthContext(
            user_id=str(payload["sub"]),
            role=Role(payload["role"]),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
        )
    except pyjwt.ExpiredSignatureError:
        raise AuthenticationFailure("Token expired")
    except pyjwt.InvalidTokenError as e:
        if not _dev_tokens_enabled():
            logger.warning(f"JWT verification failed: {e}")
            raise AuthenticationFailure("Invalid authentication token")
        logger.debug(f"JWT decode failed in dev mode, trying simple format: {e}")
    except (KeyError, ValueError) as e:
        logger.debug(f"Malformed token payload: {e}")
        raise AuthenticationFailure("Malformed token payload")

    # Dev-only fallback: user_id:role
    parts = token.split(":")
    if len(parts) != 2 or not parts[0]:
        raise AuthenticationFailure("Invalid authentication token")
    try:
        role = Role.from_string(parts[1])
    except ValueError:
        raise AuthenticationFailure(f"Unknown role: {parts[1]}")
    return AuthContext(user_id=parts[0], role=role)
