"""
ThreadCraft - JWT Token Handling

HS256 access tokens carried by HTTP requests (Authorization header) and
by the WebSocket handshake (``?token=`` query or header).
"""

import logging
import os
import secrets
import warnings
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt

from .roles import Role

logger = logging.getLogger(__name__)


JWT_ALGORITHM = "HS256"
JWT_ACCESS_TOKEN_EXPIRE_HOURS = 8
MIN_SECRET_LENGTH = 32

_jwt_secret_cache: Optional[str] = None


def _load_secret() -> str:
    secret = os.environ.get("JWT_SECRET")
    if secret:
        if len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters")
        return secret

    environment = os.environ.get("APP_ENVIRONMENT", "development")
    if environment in ("production", "prod", "staging"):
        raise RuntimeError(
            "JWT_SECRET environment variable is required in production. "
            "Generate with: python -c \"import secrets; print(secrets.token_hex(32))\""
        )

    # Tokens signed with this secret die with the process
    warnings.warn(
        "JWT_SECRET not set - using a per-process development secret.",
        UserWarning,
    )
    return f"DEV-ONLY-{secrets.token_hex(32)}"


def get_jwt_secret() -> str:
    """Signing secret, resolved once per process."""
    global _jwt_secret_cache
    if _jwt_secret_cache is None:
        _jwt_secret_cache = _load_secret()
    return _jwt_secret_cache


def reset_jwt_secret() -> None:
    """Forget the cached secret so the next call re-reads the environment."""
    global _jwt_secret_cache
    _jwt_secret_cache = None


def create_access_token(
    user_id: str,
    role: Role,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue an access token for a directory user.

    Args:
        user_id: Directory id, stored as ``sub``
        role: The user's role, stored as ``role``
        email: Optional, copied into the AuthContext
        name: Optional display name, copied into the AuthContext
        expires_delta: Lifetime (default JWT_ACCESS_TOKEN_EXPIRE_HOURS)
    """
    issued_at = datetime.utcnow()
    lifetime = expires_delta if expires_delta is not None else timedelta(
        hours=JWT_ACCESS_TOKEN_EXPIRE_HOURS
    )

    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name

    return jwt.encode(claims, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        jwt.ExpiredSignatureError: token is past ``exp``
        jwt.InvalidTokenError: anything else wrong with the token,
            including a non-access token type
    """
    claims = jwt.decode(
        token,
        get_jwt_secret(),
        algorithms=[JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
    if claims.get("type") != "access":
        raise jwt.InvalidTokenError("not an access token")
    return claims
