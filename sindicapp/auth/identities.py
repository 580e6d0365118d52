"""
SindicApp - Credential Store

Read access to user records and their roles, plus the few writes the
auth core performs on them (last login, password hash, active flag,
account creation). A password change also revokes the user's sessions
in the same transaction.

Rows never leave this module: callers receive IdentityRecord snapshots
so detached ORM objects are not passed between requests.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from sindicapp.auth.database import SessionFactory
from sindicapp.auth.errors import ConflictError, NotFound
from sindicapp.auth.models import Role, Session, User, utcnow
from sindicapp.auth.policy import RoleGrant


class IdentityRecord(BaseModel):
    """Snapshot of a user row joined with its role."""
    id: UUID
    email: str
    username: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_verified: bool
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    role: RoleGrant

    class Config:
        frozen = True

    @classmethod
    def from_rows(cls, user: User, role: Role) -> "IdentityRecord":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            password_hash=user.password_hash,
            first_name=user.first_name,
            last_name=user.last_name,
            email_verified=user.email_verified,
            is_active=user.is_active,
            last_login=user.last_login,
            created_at=user.created_at,
            role=RoleGrant.from_role(role),
        )


class IdentityStore:
    """
    User and role lookups over an injected session factory.

    Store exceptions propagate; the session manager and access gate
    translate them.
    """

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def _select_with_role(self):
        return select(User, Role).join(Role, User.role_id == Role.id)

    async def get(self, identity_id: UUID) -> Optional[IdentityRecord]:
        """Fetch a user and its current role, or None."""
        with self._session_factory() as db:
            row = db.exec(self._select_with_role().where(User.id == identity_id)).first()
            return IdentityRecord.from_rows(*row) if row else None

    async def find_by_identifier(self, identifier: str) -> Optional[IdentityRecord]:
        """
        Find a user whose email OR username equals identifier exactly.

        Matching is case-sensitive on both fields.
        """
        statement = self._select_with_role().where(
            or_(User.email == identifier, User.username == identifier)
        )
        with self._session_factory() as db:
            row = db.exec(statement).first()
            return IdentityRecord.from_rows(*row) if row else None

    async def touch_last_login(self, identity_id: UUID) -> None:
        await self._update(identity_id, last_login=utcnow())

    async def update_password_hash(self, identity_id: UUID, password_hash: str) -> None:
        if not await self._update(identity_id, password_hash=password_hash):
            raise NotFound("User not found")

    async def replace_password_hash(self, identity_id: UUID, password_hash: str) -> int:
        """
        Store a new password hash and invalidate every session of the user
        in one transaction. Either both writes commit or neither does.

        Raises:
            NotFound: No such user

        Returns:
            Number of sessions invalidated
        """
        now = utcnow()
        with self._session_factory() as db:
            result = db.execute(
                update(User)
                .where(User.id == identity_id)
                .values(password_hash=password_hash, updated_at=now)
            )
            if result.rowcount == 0:
                db.rollback()
                raise NotFound("User not found")

            revoked = db.execute(
                update(Session)
                .where(Session.user_id == identity_id)
                .values(is_valid=False)
            )
            db.commit()
            return revoked.rowcount

    async def set_active(self, identity_id: UUID, is_active: bool) -> bool:
        """Activate or deactivate a user. Returns False if no such user."""
        return await self._update(identity_id, is_active=is_active)

    async def create(
        self,
        email: str,
        username: str,
        password_hash: str,
        role_name: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email_verified: bool = False,
    ) -> IdentityRecord:
        """
        Create an active user with the named role.

        Raises:
            ConflictError: Email or username already taken
            NotFound: Role does not exist
        """
        with self._session_factory() as db:
            existing = db.exec(
                select(User).where(or_(User.email == email, User.username == username))
            ).first()
            if existing:
                if existing.email == email:
                    raise ConflictError("Email already registered")
                raise ConflictError("Username already taken")

            role = db.exec(select(Role).where(Role.name == role_name)).first()
            if not role:
                raise NotFound(f"Role not found: {role_name}")

            user = User(
                email=email,
                username=username,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                email_verified=email_verified,
                is_active=True,
                role_id=role.id,
            )
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConflictError("Email or username already registered") from None
            db.refresh(user)
            db.refresh(role)
            return IdentityRecord.from_rows(user, role)

    async def _update(self, identity_id: UUID, **values) -> bool:
        statement = (
            update(User)
            .where(User.id == identity_id)
            .values(updated_at=utcnow(), **values)
        )
        with self._session_factory() as db:
            result = db.execute(statement)
            db.commit()
            return result.rowcount > 0
