"""
SindicApp - Authorization Policy Tests

Unit tests for role grants and requirements.
Tests flag evaluation, role tags and the seeded default roles.

Run with: pytest tests/test_policy.py
"""

import pytest
from uuid import uuid4

from sqlmodel import select

from sindicapp.auth.database import load_role_definitions
from sindicapp.auth.models import Role
from sindicapp.auth.policy import Permission, Requirement, RoleGrant, RoleName


def grant(name: str, *permissions: Permission) -> RoleGrant:
    return RoleGrant(id=uuid4(), name=name, permissions=frozenset(permissions))


class TestRoleGrant:
    """Tests for role snapshots."""
    
    def test_from_role_reads_flags(self, db_session):
        moderator = db_session.exec(select(Role).where(Role.name == "moderator")).one()
        
        role_grant = RoleGrant.from_role(moderator)
        
        assert role_grant.name == "moderator"
        assert role_grant.permissions == {
            Permission.CREATE_POSTS,
            Permission.MODERATE_POSTS,
            Permission.VIEW_REPORTS,
        }
    
    def test_admin_has_all_permissions(self, db_session):
        admin = db_session.exec(select(Role).where(Role.name == "admin")).one()
        
        role_grant = RoleGrant.from_role(admin)
        
        for permission in Permission:
            assert role_grant.has(permission)
    
    def test_user_can_only_post(self, db_session):
        user = db_session.exec(select(Role).where(Role.name == "user")).one()
        
        role_grant = RoleGrant.from_role(user)
        
        assert role_grant.permissions == {Permission.CREATE_POSTS}
    
    def test_has_accepts_flag_name(self):
        role_grant = grant("user", Permission.CREATE_POSTS)
        
        assert role_grant.has("can_create_posts")
        assert not role_grant.has("can_manage_users")
    
    def test_grant_is_immutable(self):
        role_grant = grant("user", Permission.CREATE_POSTS)
        
        with pytest.raises(Exception):
            role_grant.name = "admin"


class TestRequirement:
    """Tests for requirement evaluation."""
    
    def test_permission_requirement(self):
        requirement = Requirement.permission(Permission.MANAGE_USERS)
        
        assert requirement.is_satisfied_by(grant("admin", Permission.MANAGE_USERS))
        assert not requirement.is_satisfied_by(grant("moderator", Permission.MODERATE_POSTS))
        assert requirement.description == "Permission required: can_manage_users"
    
    def test_role_requirement_uses_defining_flag(self):
        requirement = Requirement.role(RoleName.ADMIN)
        
        # Any role carrying the admin flag counts, whatever its name
        assert requirement.is_satisfied_by(grant("superuser", Permission.ADMIN_SYSTEM))
        assert not requirement.is_satisfied_by(
            grant("admin", Permission.MANAGE_USERS, Permission.VIEW_REPORTS)
        )
        assert requirement.description == "admin role required"
    
    def test_any_role(self):
        requirement = Requirement.any_role(RoleName.ADMIN, RoleName.MODERATOR)
        
        assert requirement.is_satisfied_by(grant("moderator", Permission.MODERATE_POSTS))
        assert requirement.is_satisfied_by(grant("admin", Permission.ADMIN_SYSTEM))
        assert not requirement.is_satisfied_by(grant("user", Permission.CREATE_POSTS))
        assert requirement.description == "One of roles required: admin, moderator"
    
    def test_accepts_plain_strings(self):
        requirement = Requirement.any_role("moderator")
        
        assert requirement.is_satisfied_by(grant("moderator", Permission.MODERATE_POSTS))
    
    def test_unknown_role_tag_rejected(self):
        with pytest.raises(ValueError):
            Requirement.role("superuser")
    
    def test_empty_requirement_rejected(self):
        with pytest.raises(ValueError):
            Requirement([], "nothing")
    
    def test_empty_grant_satisfies_nothing(self):
        empty = grant("guest")
        
        for permission in Permission:
            assert not Requirement.permission(permission).is_satisfied_by(empty)
        for name in RoleName:
            assert not Requirement.role(name).is_satisfied_by(empty)


class TestRoleDefinitions:
    """Tests for the bundled role file."""
    
    def test_default_roles_present(self):
        definitions = load_role_definitions()
        
        assert set(definitions) == {"user", "moderator", "admin"}
    
    def test_permissions_are_known_flags(self):
        definitions = load_role_definitions()
        
        for definition in definitions.values():
            for flag in definition["permissions"]:
                Permission(flag)
    
    def test_role_tags_match_defaults(self):
        definitions = load_role_definitions()
        
        for name in RoleName:
            assert Requirement.role(name).alternatives[0] <= set(
                Permission(flag) for flag in definitions[name.value]["permissions"]
            )
