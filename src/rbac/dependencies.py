"""
ThreadCraft - FastAPI Auth Dependencies

Usage:
    @router.post("/messages")
    async def send(ctx: AuthContext = Depends(require_auth)):
        ...
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .context import AuthContext, AuthenticationFailure, resolve_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """
    Get the authentication context for the current request.

    Does NOT enforce authentication - use require_auth for that.
    """
    if hasattr(request.state, "auth_context"):
        return request.state.auth_context

    if credentials is None:
        return AuthContext.anonymous()

    try:
        ctx = resolve_token(credentials.credentials)
    except AuthenticationFailure as e:
        logger.debug(f"Rejected bearer token: {e.reason}")
        return AuthContext.anonymous()

    request.state.auth_context = ctx
    return ctx


async def require_auth(
    ctx: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """
    Require authentication.

    Raises 401 if not authenticated.
    """
    if not ctx.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx
