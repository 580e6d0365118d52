"""
SindicApp - Access Gate

Per-request authentication and authorization, independent of the web
framework. FastAPI dependencies in sindicapp.auth.dependencies wrap it.

Every request re-reads the identity and its role, so deactivation and
role changes take effect before the access token expires.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from sindicapp.auth.context import AuthenticatedIdentity, RequestContext
from sindicapp.auth.errors import (
    Forbidden,
    InvalidTokenError,
    StoreUnavailable,
    Unauthenticated,
)
from sindicapp.auth.identities import IdentityStore
from sindicapp.auth.policy import Requirement
from sindicapp.auth.tokens import TokenCodec
from sindicapp.logging import get_logger


logger = get_logger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of an "Authorization: Bearer <token>" header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class AccessGate:
    """Turns an Authorization header into a RequestContext and enforces requirements."""

    def __init__(self, codec: TokenCodec, identities: IdentityStore):
        self.codec = codec
        self.identities = identities

    async def authenticate(self, authorization: Optional[str]) -> RequestContext:
        """
        Resolve the caller of a request.

        Raises:
            Unauthenticated: Missing/empty bearer token, invalid token,
                or user missing or inactive
            StoreUnavailable: The user lookup failed
        """
        token = extract_bearer_token(authorization)
        if token is None:
            raise Unauthenticated("Access token is required")

        try:
            payload = self.codec.verify_access(token)
        except InvalidTokenError:
            raise Unauthenticated("Invalid or expired token") from None

        try:
            identity = await self.identities.get(payload.identity_id)
        except SQLAlchemyError:
            logger.exception("auth.gate.store_error")
            raise StoreUnavailable() from None

        if identity is None or not identity.is_active:
            logger.info("auth.gate.rejected", user_id=payload.sub, reason="identity")
            raise Unauthenticated("User not found or inactive")

        return RequestContext(
            identity=AuthenticatedIdentity(
                id=identity.id,
                email=identity.email,
                username=identity.username,
                token_id=payload.jti,
            ),
            role=identity.role,
        )

    async def optional_authenticate(self, authorization: Optional[str]) -> RequestContext:
        """Like authenticate, but an absent or unusable token yields an anonymous context."""
        try:
            return await self.authenticate(authorization)
        except Unauthenticated:
            return RequestContext.anonymous()

    def authorize(self, context: RequestContext, requirement: Requirement) -> RequestContext:
        """
        Raises:
            Unauthenticated: Context is anonymous
            Forbidden: Role does not satisfy the requirement
        """
        if not context.is_authenticated:
            raise Unauthenticated()
        if not context.satisfies(requirement):
            logger.info(
                "auth.gate.forbidden",
                user_id=str(context.identity_id),
                requirement=requirement.description,
            )
            raise Forbidden(requirement.description)
        return context
