"""
SindicApp - Session Manager

The token lifecycle protocol on top of the token codec, the session
ledger and the credential store:

    Anonymous   --login-->            Active(pair, row)
    Active      --refresh-->          Active(new pair, new row), old row invalidated
    Active      --logout-->           Invalidated (one row)
    Active      --logout-all/password change--> Invalidated (every row)
    Invalidated --purge-->            Deleted

Security:
- Unknown identifier, inactive account and wrong password fail identically
- Refresh tokens are single-use; rotation is guarded by SessionLedger.consume
- Database exceptions are logged and surfaced as StoreUnavailable
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from sindicapp.auth.errors import (
    ConfigurationError,
    IdentityUnavailable,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidTokenError,
    NotFound,
    StoreUnavailable,
)
from sindicapp.auth.identities import IdentityRecord, IdentityStore
from sindicapp.auth.password import PasswordHasher
from sindicapp.auth.policy import RoleName
from sindicapp.auth.sessions import SessionLedger
from sindicapp.auth.tokens import TokenClaims, TokenCodec, TokenPair
from sindicapp.logging import get_logger


logger = get_logger(__name__)

DEFAULT_ROLE = RoleName.USER


class IdentitySummary(BaseModel):
    """User-facing view of an identity. Never includes the password hash."""
    id: UUID
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_verified: bool
    role: str
    last_login: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: IdentityRecord) -> "IdentitySummary":
        return cls(
            id=record.id,
            email=record.email,
            username=record.username,
            first_name=record.first_name,
            last_name=record.last_name,
            email_verified=record.email_verified,
            role=record.role.name,
            last_login=record.last_login,
            created_at=record.created_at,
        )


class AuthResult(BaseModel):
    """Outcome of login, register and refresh."""
    user: IdentitySummary
    tokens: TokenPair


class SessionManager:
    """
    Orchestrates login, refresh, logout, logout-all, password change and
    cleanup. Every dependency is injected.
    """

    def __init__(
        self,
        codec: TokenCodec,
        ledger: SessionLedger,
        identities: IdentityStore,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.codec = codec
        self.ledger = ledger
        self.identities = identities
        self.hasher = hasher or PasswordHasher()

    @contextmanager
    def _store_errors(self, operation: str):
        try:
            yield
        except SQLAlchemyError:
            logger.exception("auth.store.error", operation=operation)
            raise StoreUnavailable() from None

    async def _open_session(
        self,
        identity: IdentityRecord,
        user_agent: Optional[str],
        ip_address: Optional[str],
    ) -> TokenPair:
        claims = TokenClaims(
            identity_id=identity.id,
            email=identity.email,
            username=identity.username,
            role_id=identity.role.id,
        )
        tokens = self.codec.issue_pair(claims)
        await self.ledger.create(
            tokens.refresh_token,
            identity.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        return tokens

    async def login(
        self,
        identifier: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuthResult:
        """
        Authenticate by email or username and open a session.

        Raises:
            InvalidCredentials: No such user, inactive, or wrong password
        """
        with self._store_errors("login"):
            identity = await self.identities.find_by_identifier(identifier)

            if identity is None:
                self.hasher.verify_dummy(password)
                logger.info("auth.login.failure", reason="unknown_identifier")
                raise InvalidCredentials()

            password_ok = self.hasher.verify(password, identity.password_hash)
            if not password_ok or not identity.is_active:
                logger.info(
                    "auth.login.failure",
                    user_id=str(identity.id),
                    reason="inactive" if password_ok else "wrong_password",
                )
                raise InvalidCredentials()

            tokens = await self._open_session(identity, user_agent, ip_address)

        await self._after_login(identity, password)

        logger.info("auth.login.success", user_id=str(identity.id))
        return AuthResult(user=IdentitySummary.from_record(identity), tokens=tokens)

    async def _after_login(self, identity: IdentityRecord, password: str) -> None:
        """Last-login stamp and hash upgrade; failures never fail the login."""
        try:
            await self.identities.touch_last_login(identity.id)
            if self.hasher.needs_rehash(identity.password_hash):
                await self.identities.update_password_hash(identity.id, self.hasher.hash(password))
        except (SQLAlchemyError, NotFound):
            logger.warning("auth.login.bookkeeping_failed", user_id=str(identity.id), exc_info=True)

    async def refresh(
        self,
        refresh_token: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuthResult:
        """
        Exchange a refresh token for a new pair. The presented token is spent.

        Raises:
            InvalidOrExpiredToken: Unknown, revoked, expired, tampered or already used
            IdentityUnavailable: User deleted or deactivated since issuance
        """
        with self._store_errors("refresh"):
            if not await self.ledger.is_usable(refresh_token):
                logger.info("auth.refresh.rejected", reason="ledger")
                raise InvalidOrExpiredToken()

            try:
                payload = self.codec.verify_refresh(refresh_token)
            except InvalidTokenError:
                # Valid row with a bad signature means tampering; same answer
                logger.warning("auth.refresh.rejected", reason="signature")
                raise InvalidOrExpiredToken() from None

            identity = await self.identities.get(payload.identity_id)
            if identity is None or not identity.is_active:
                logger.info("auth.refresh.rejected", reason="identity", user_id=payload.sub)
                raise IdentityUnavailable()

            if not await self.ledger.consume(refresh_token):
                logger.warning("auth.refresh.rejected", reason="already_consumed", user_id=payload.sub)
                raise InvalidOrExpiredToken()

            tokens = await self._open_session(identity, user_agent, ip_address)

        logger.info("auth.refresh.success", user_id=str(identity.id))
        return AuthResult(user=IdentitySummary.from_record(identity), tokens=tokens)

    async def logout(self, refresh_token: str) -> None:
        """
        Invalidate one session. Idempotent and never fails.
        """
        try:
            count = await self.ledger.invalidate(refresh_token)
        except SQLAlchemyError:
            logger.exception("auth.logout.store_error")
            return
        logger.info("auth.logout", sessions_invalidated=count)

    async def logout_all(self, identity_id: UUID) -> int:
        """
        Invalidate every session of a user.

        Returns:
            Number of sessions invalidated
        """
        with self._store_errors("logout_all"):
            count = await self.ledger.invalidate_all_for_identity(identity_id)
        logger.info("auth.logout.all", user_id=str(identity_id), sessions_invalidated=count)
        return count

    async def change_password(
        self,
        identity_id: UUID,
        current_password: str,
        new_password: str,
    ) -> int:
        """
        Replace the password hash and revoke every session of the user
        atomically. On a store failure neither change is applied.

        Raises:
            InvalidCredentials: Current password does not match
            StoreUnavailable: The store failed; password and sessions unchanged

        Returns:
            Number of sessions invalidated
        """
        with self._store_errors("change_password"):
            identity = await self.identities.get(identity_id)
            if identity is None or not self.hasher.verify(current_password, identity.password_hash):
                logger.info("auth.password.change_rejected", user_id=str(identity_id))
                raise InvalidCredentials()

            try:
                count = await self.identities.replace_password_hash(
                    identity_id, self.hasher.hash(new_password)
                )
            except NotFound:
                raise InvalidCredentials() from None

        logger.info("auth.password.changed", user_id=str(identity_id), sessions_invalidated=count)
        return count

    async def clean_expired_sessions(self) -> int:
        """Delete expired and invalidated sessions. Maintenance only."""
        with self._store_errors("clean_expired_sessions"):
            count = await self.ledger.purge_expired_or_invalid()
        logger.info("auth.sessions.purged", deleted=count)
        return count

    async def register(
        self,
        email: str,
        username: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuthResult:
        """
        Create an account with the default role and open its first session.

        Raises:
            ConflictError: Email or username taken
            ConfigurationError: Default role missing from the database
        """
        with self._store_errors("register"):
            try:
                identity = await self.identities.create(
                    email=email,
                    username=username,
                    password_hash=self.hasher.hash(password),
                    role_name=DEFAULT_ROLE.value,
                    first_name=first_name,
                    last_name=last_name,
                )
            except NotFound:
                raise ConfigurationError("Default user role not found") from None

            tokens = await self._open_session(identity, user_agent, ip_address)

        logger.info("auth.register.success", user_id=str(identity.id))
        return AuthResult(user=IdentitySummary.from_record(identity), tokens=tokens)

    async def profile(self, identity_id: UUID) -> IdentitySummary:
        """
        Raises:
            NotFound: User no longer exists
        """
        with self._store_errors("profile"):
            identity = await self.identities.get(identity_id)
        if identity is None:
            raise NotFound("User not found")
        return IdentitySummary.from_record(identity)
