"""
SindicApp - Authentication Package

Token lifecycle core:
- Access/refresh JWT pair with distinct secrets
- Server-side refresh sessions with single-use rotation
- bcrypt password hashing
- Flag-based authorization with an immutable request context
"""

from sindicapp.auth.context import RequestContext
from sindicapp.auth.dependencies import (
    authenticate,
    optional_authenticate,
    require,
    require_any_role,
    require_permission,
    require_role,
)
from sindicapp.auth.manager import SessionManager
from sindicapp.auth.policy import Permission, Requirement, RoleName
from sindicapp.auth.tokens import TokenCodec

__all__ = [
    "RequestContext",
    "SessionManager",
    "TokenCodec",
    "Permission",
    "Requirement",
    "RoleName",
    "authenticate",
    "optional_authenticate",
    "require",
    "require_any_role",
    "require_permission",
    "require_role",
]
