"""
ThreadCraft - Role-Based Access Control (RBAC)

Roles:
    - admin: full access
    - salesperson: owns the customer relationship, reviews submitted work
    - designer: works design tasks
    - manufacturer: works production tasks
    - customer: places orders

Usage:
    from rbac import Role, AuthContext, require_auth

    @router.post("/tasks/{task_id}/transition")
    async def transition(ctx: AuthContext = Depends(require_auth)):
        ...
"""

from .roles import Role, REVIEWER_ROLES
from .context import AuthContext, AuthenticationFailure, resolve_token
from .dependencies import get_auth_context, require_auth
from .jwt import create_access_token, decode_token

__all__ = [
    "Role",
    "REVIEWER_ROLES",
    "AuthContext",
    "AuthenticationFailure",
    "resolve_token",
    "get_auth_context",
    "require_auth",
    "create_access_token",
    "decode_token",
]
