"""
SindicApp - Access Gate Tests

Authentication of bearer tokens and authorization of request contexts.

Run with: pytest tests/test_gate.py -v
"""

import pytest
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError
from sqlmodel import select

from sindicapp.auth.context import RequestContext
from sindicapp.auth.errors import Forbidden, StoreUnavailable, Unauthenticated
from sindicapp.auth.gate import extract_bearer_token
from sindicapp.auth.models import Role, User
from sindicapp.auth.policy import Permission, Requirement, RoleName


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", "abc"),
        ("BEARER   abc  ", "abc"),
        ("Bearer", None),
        ("Bearer   ", None),
        ("Basic dXNlcjpwYXNz", None),
        ("abc.def.ghi", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


class TestAuthenticate:
    
    @pytest.mark.asyncio
    async def test_valid_token(self, gate, manager, sample_user):
        result = await manager.login("user@example.com", "Correct1pw")
        
        ctx = await gate.authenticate(f"Bearer {result.tokens.access_token}")
        
        assert ctx.is_authenticated
        assert ctx.identity_id == sample_user.id
        assert ctx.identity.username == "sampleuser"
        assert ctx.role.name == "user"
        assert ctx.can(Permission.CREATE_POSTS)
        assert not ctx.can(Permission.MODERATE_POSTS)
    
    @pytest.mark.asyncio
    async def test_missing_header(self, gate):
        with pytest.raises(Unauthenticated) as exc_info:
            await gate.authenticate(None)
        
        assert exc_info.value.message == "Access token is required"
        assert exc_info.value.status_code == 401
    
    @pytest.mark.asyncio
    async def test_wrong_scheme(self, gate, manager, sample_user):
        result = await manager.login("user@example.com", "Correct1pw")
        
        with pytest.raises(Unauthenticated) as exc_info:
            await gate.authenticate(f"Token {result.tokens.access_token}")
        
        assert exc_info.value.message == "Access token is required"
    
    @pytest.mark.asyncio
    async def test_garbage_token(self, gate):
        with pytest.raises(Unauthenticated) as exc_info:
            await gate.authenticate("Bearer not-a-token")
        
        assert exc_info.value.message == "Invalid or expired token"
    
    @pytest.mark.asyncio
    async def test_refresh_token_not_accepted(self, gate, manager, sample_user):
        result = await manager.login("user@example.com", "Correct1pw")
        
        with pytest.raises(Unauthenticated) as exc_info:
            await gate.authenticate(f"Bearer {result.tokens.refresh_token}")
        
        assert exc_info.value.message == "Invalid or expired token"
    
    @pytest.mark.asyncio
    async def test_deactivated_user_rejected(self, gate, manager, db_session, sample_user):
        result = await manager.login("user@example.com", "Correct1pw")
        user = db_session.get(User, sample_user.id)
        user.is_active = False
        db_session.add(user)
        db_session.commit()
        
        with pytest.raises(Unauthenticated) as exc_info:
            await gate.authenticate(f"Bearer {result.tokens.access_token}")
        
        assert exc_info.value.message == "User not found or inactive"
    
    @pytest.mark.asyncio
    async def test_role_change_applies_immediately(self, gate, manager, db_session, sample_user):
        result = await manager.login("user@example.com", "Correct1pw")
        admin_role = db_session.exec(select(Role).where(Role.name == "admin")).one()
        user = db_session.get(User, sample_user.id)
        user.role_id = admin_role.id
        db_session.add(user)
        db_session.commit()
        
        ctx = await gate.authenticate(f"Bearer {result.tokens.access_token}")
        
        assert ctx.role.name == "admin"
        assert ctx.can(Permission.MANAGE_USERS)
    
    @pytest.mark.asyncio
    async def test_store_error(self, gate, manager, sample_user, monkeypatch):
        result = await manager.login("user@example.com", "Correct1pw")
        monkeypatch.setattr(
            gate.identities,
            "get",
            AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone"))),
        )
        
        with pytest.raises(StoreUnavailable):
            await gate.authenticate(f"Bearer {result.tokens.access_token}")


class TestOptionalAuthenticate:
    
    @pytest.mark.asyncio
    async def test_no_header_is_anonymous(self, gate):
        ctx = await gate.optional_authenticate(None)
        
        assert not ctx.is_authenticated
        assert ctx.identity_id is None
        assert not ctx.can(Permission.CREATE_POSTS)
    
    @pytest.mark.asyncio
    async def test_bad_token_is_anonymous(self, gate):
        ctx = await gate.optional_authenticate("Bearer expired-or-forged")
        
        assert ctx == RequestContext.anonymous()
    
    @pytest.mark.asyncio
    async def test_valid_token_is_identified(self, gate, manager, sample_user):
        result = await manager.login("sampleuser", "Correct1pw")
        
        ctx = await gate.optional_authenticate(f"Bearer {result.tokens.access_token}")
        
        assert ctx.identity_id == sample_user.id


class TestAuthorize:
    
    @pytest.mark.asyncio
    async def test_anonymous_is_unauthenticated(self, gate):
        with pytest.raises(Unauthenticated):
            gate.authorize(RequestContext.anonymous(), Requirement.role(RoleName.USER))
    
    @pytest.mark.asyncio
    async def test_missing_flag_is_forbidden(self, gate, manager, sample_user):
        result = await manager.login("user@example.com", "Correct1pw")
        ctx = await gate.authenticate(f"Bearer {result.tokens.access_token}")
        
        with pytest.raises(Forbidden) as exc_info:
            gate.authorize(ctx, Requirement.role(RoleName.ADMIN))
        
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "admin role required"
    
    @pytest.mark.asyncio
    async def test_satisfied_requirement_returns_context(self, gate, manager, test_moderator):
        result = await manager.login("moderator", "ModPass123")
        ctx = await gate.authenticate(f"Bearer {result.tokens.access_token}")
        
        allowed = gate.authorize(ctx, Requirement.any_role(RoleName.ADMIN, RoleName.MODERATOR))
        
        assert allowed is ctx
    
    @pytest.mark.asyncio
    async def test_context_is_frozen(self, gate, manager, sample_user):
        result = await manager.login("user@example.com", "Correct1pw")
        ctx = await gate.authenticate(f"Bearer {result.tokens.access_token}")
        
        with pytest.raises(Exception):
            ctx.role = None
