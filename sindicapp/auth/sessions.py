"""
SindicApp - Session Ledger

Server-side store of issued refresh tokens. One row per login or refresh.

Security:
- A refresh token is accepted only while its row is valid, unexpired and
  the owning user is active
- Logout, logout-all, password change and rotation clear is_valid
- Rotation consumes a token with a conditional UPDATE so two concurrent
  refreshes of the same token cannot both succeed
- Expired and invalidated rows are purged out-of-band
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from sindicapp.auth.database import SessionFactory
from sindicapp.auth.errors import ConflictError
from sindicapp.auth.models import Session, User, utcnow


class SessionLedger:
    """
    CRUD over the sessions table with the usability invariants.

    Args:
        session_factory: Opens a database session per operation
        refresh_lifetime: Lifetime given to new rows (matches refresh token expiry)
    """

    def __init__(self, session_factory: SessionFactory, refresh_lifetime: timedelta):
        self._session_factory = session_factory
        self.refresh_lifetime = refresh_lifetime

    async def create(
        self,
        refresh_token: str,
        identity_id: UUID,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Session:
        """
        Record a freshly issued refresh token.

        Raises:
            ConflictError: The token string already exists
        """
        now = utcnow()
        session = Session(
            refresh_token=refresh_token,
            user_id=identity_id,
            user_agent=user_agent,
            ip_address=ip_address,
            expires_at=now + self.refresh_lifetime,
            is_valid=True,
            created_at=now,
        )

        with self._session_factory() as db:
            db.add(session)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConflictError("Refresh token already recorded") from None
            db.refresh(session)
            return session

    async def is_usable(self, refresh_token: str) -> bool:
        """
        Check whether a refresh token may be exchanged.

        Unknown and invalid tokens both return False.
        """
        statement = (
            select(Session, User)
            .join(User, Session.user_id == User.id)
            .where(Session.refresh_token == refresh_token)
        )
        with self._session_factory() as db:
            row = db.exec(statement).first()

        if not row:
            return False
        session, user = row
        return session.is_valid and session.expires_at > utcnow() and user.is_active

    async def consume(self, refresh_token: str) -> bool:
        """
        Atomically invalidate a usable token for rotation.

        The UPDATE only matches a row that is still valid and unexpired, so
        of several concurrent callers exactly one sees a changed row.

        Returns:
            True if this call consumed the token
        """
        statement = (
            update(Session)
            .where(
                Session.refresh_token == refresh_token,
                Session.is_valid == True,  # noqa: E712
                Session.expires_at > utcnow(),
            )
            .values(is_valid=False)
        )
        with self._session_factory() as db:
            result = db.execute(statement)
            db.commit()
            return result.rowcount == 1

    async def invalidate(self, refresh_token: str) -> int:
        """
        Invalidate the row(s) holding refresh_token (logout).

        No matching row is not an error.

        Returns:
            Number of rows touched
        """
        statement = (
            update(Session)
            .where(Session.refresh_token == refresh_token)
            .values(is_valid=False)
        )
        with self._session_factory() as db:
            result = db.execute(statement)
            db.commit()
            return result.rowcount

    async def invalidate_all_for_identity(self, identity_id: UUID) -> int:
        """
        Invalidate every session of a user regardless of state.

        Use cases:
            - Logout everywhere
            - Password change
        """
        statement = (
            update(Session)
            .where(Session.user_id == identity_id)
            .values(is_valid=False)
        )
        with self._session_factory() as db:
            result = db.execute(statement)
            db.commit()
            return result.rowcount

    async def invalidate_by_id(self, session_id: UUID, identity_id: UUID) -> bool:
        """Revoke one session, only if it belongs to identity_id."""
        statement = (
            update(Session)
            .where(Session.id == session_id, Session.user_id == identity_id)
            .values(is_valid=False)
        )
        with self._session_factory() as db:
            result = db.execute(statement)
            db.commit()
            return result.rowcount > 0

    async def list_active(self, identity_id: UUID) -> list[Session]:
        """Valid, unexpired sessions of a user, newest first."""
        statement = (
            select(Session)
            .where(
                Session.user_id == identity_id,
                Session.is_valid == True,  # noqa: E712
                Session.expires_at > utcnow(),
            )
            .order_by(Session.created_at.desc())
        )
        with self._session_factory() as db:
            return list(db.exec(statement).all())

    async def purge_expired_or_invalid(self) -> int:
        """
        Delete rows that can never be used again.

        Removes rows where expires_at < now OR is_valid is false. Every
        other row is left untouched.

        Returns:
            Number of rows deleted
        """
        statement = delete(Session).where(
            or_(Session.expires_at < utcnow(), Session.is_valid == False)  # noqa: E712
        )
        with self._session_factory() as db:
            result = db.execute(statement)
            db.commit()
            return result.rowcount
