"""
SindicApp - Authorization Policy

One predicate type for every access decision. A Requirement is either a
named permission or a set of role tags; both compile down to flag sets
and are evaluated by the same path over the caller's role flags.

Role tags map to the flag that defines them:
    admin      -> can_admin_system
    moderator  -> can_moderate_posts
    user       -> can_create_posts

So require_role(ADMIN) admits any role carrying can_admin_system, and
require_any_role(ADMIN, MODERATOR) admits any role that moderates posts
or administers the system. The role name itself is never compared.
"""

from enum import Enum
from typing import FrozenSet, Iterable, Tuple
from uuid import UUID

from pydantic import BaseModel


class Permission(str, Enum):
    """Boolean permission flags of a role (values are the column names)."""
    CREATE_POSTS = "can_create_posts"
    MODERATE_POSTS = "can_moderate_posts"
    MANAGE_USERS = "can_manage_users"
    VIEW_REPORTS = "can_view_reports"
    MANAGE_COMPANY = "can_manage_company"
    ADMIN_SYSTEM = "can_admin_system"


class RoleName(str, Enum):
    """Role tags usable in requirements."""
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


ROLE_TAG_FLAGS = {
    RoleName.USER: Permission.CREATE_POSTS,
    RoleName.MODERATOR: Permission.MODERATE_POSTS,
    RoleName.ADMIN: Permission.ADMIN_SYSTEM,
}


class RoleGrant(BaseModel):
    """Immutable snapshot of a role and the permissions it grants."""
    id: UUID
    name: str
    permissions: FrozenSet[Permission] = frozenset()
    
    class Config:
        frozen = True
    
    @classmethod
    def from_role(cls, role) -> "RoleGrant":
        """Build from a Role row by reading its flag columns."""
        granted = frozenset(p for p in Permission if getattr(role, p.value, False))
        return cls(id=role.id, name=role.name, permissions=granted)
    
    def has(self, permission: Permission) -> bool:
        return Permission(permission) in self.permissions


class Requirement:
    """
    Authorization predicate: satisfied when the role holds every flag of
    at least one alternative.
    
    Usage:
        Requirement.permission(Permission.MANAGE_USERS)
        Requirement.role(RoleName.ADMIN)
        Requirement.any_role(RoleName.ADMIN, RoleName.MODERATOR)
    """
    
    def __init__(self, alternatives: Iterable[Iterable[Permission]], description: str):
        self.alternatives: Tuple[FrozenSet[Permission], ...] = tuple(
            frozenset(Permission(p) for p in flags) for flags in alternatives
        )
        if not self.alternatives:
            raise ValueError("Requirement needs at least one alternative")
        self.description = description
    
    @classmethod
    def permission(cls, permission: Permission) -> "Requirement":
        permission = Permission(permission)
        return cls([[permission]], f"Permission required: {permission.value}")
    
    @classmethod
    def role(cls, name: RoleName) -> "Requirement":
        return cls.any_role(name)
    
    @classmethod
    def any_role(cls, *names: RoleName) -> "Requirement":
        tags = [RoleName(n) for n in names]
        alternatives = [[ROLE_TAG_FLAGS[tag]] for tag in tags]
        if len(tags) == 1:
            description = f"{tags[0].value} role required"
        else:
            description = "One of roles required: " + ", ".join(t.value for t in tags)
        return cls(alternatives, description)
    
    def is_satisfied_by(self, grant: RoleGrant) -> bool:
        return any(flags <= grant.permissions for flags in self.alternatives)
    
    def __repr__(self) -> str:
        return f"Requirement({self.description!r})"
