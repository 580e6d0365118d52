"""
SindicApp - Request Context

Immutable "who is calling" value produced once per request by the access
gate and handed to route handlers. Handlers read it; nothing writes it.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from sindicapp.auth.policy import Permission, Requirement, RoleGrant


class AuthenticatedIdentity(BaseModel):
    """The caller as re-read from the database for this request."""
    id: UUID
    email: str
    username: str
    token_id: str  # jti of the presented access token

    class Config:
        frozen = True


class RequestContext(BaseModel):
    """
    Authorization context for a request.

    Usage in routes:
        async def handler(ctx: RequestContext = Depends(authenticate)):
            if ctx.can(Permission.VIEW_REPORTS):
                ...
    """
    identity: Optional[AuthenticatedIdentity] = None
    role: Optional[RoleGrant] = None

    class Config:
        frozen = True

    @classmethod
    def anonymous(cls) -> "RequestContext":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None and self.role is not None

    @property
    def identity_id(self) -> Optional[UUID]:
        return self.identity.id if self.identity else None

    def can(self, permission: Permission) -> bool:
        return self.role is not None and self.role.has(permission)

    def satisfies(self, requirement: Requirement) -> bool:
        return self.role is not None and requirement.is_satisfied_by(self.role)
