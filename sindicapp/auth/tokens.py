"""
SindicApp - JWT Token Codec

Signs and verifies the two bearer token types:
- Access tokens: short-lived (15 minutes default), signed with JWT_SECRET
- Refresh tokens: long-lived (7 days default), signed with JWT_REFRESH_SECRET

Both carry the same claims (user ID, email, username, role ID) plus a
random jti so two tokens issued in the same second never collide.

Security:
- Distinct secrets: holding one token type never allows forging the other
- The typ claim prevents presenting a refresh token as an access token
- Every verification failure surfaces as the same InvalidTokenError
"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import jwt, JWTError
from pydantic import BaseModel, Field, ValidationError

from sindicapp.auth.errors import ConfigurationError, InvalidTokenError


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value) -> timedelta:
    """
    Parse a lifetime such as "15m", "12h", "7d" or "3600".

    A bare number means seconds.

    Raises:
        ConfigurationError: If the value cannot be parsed or is not positive
    """
    if isinstance(value, timedelta):
        duration = value
    else:
        match = _DURATION_PATTERN.match(str(value))
        if not match:
            raise ConfigurationError(f"Invalid token lifetime: {value!r}")
        amount, unit = match.groups()
        duration = timedelta(**{_DURATION_UNITS[unit]: int(amount)})

    if duration <= timedelta(0):
        raise ConfigurationError(f"Token lifetime must be positive: {value!r}")
    return duration


class TokenClaims(BaseModel):
    """Identity claims embedded in both token types."""
    identity_id: UUID
    email: str
    username: str
    role_id: UUID


class TokenPayload(BaseModel):
    """
    Decoded JWT payload.

    Attributes:
        sub: Subject (user ID)
        email: User email at issuance
        username: Username at issuance
        role_id: Role at issuance (may since have changed)
        typ: "access" or "refresh"
        jti: Unique token ID
        exp: Expiration timestamp
        iat: Issued-at timestamp
    """
    sub: str = Field(..., description="User ID")
    email: str
    username: str
    role_id: str
    typ: str
    jti: str
    exp: datetime
    iat: datetime

    @property
    def identity_id(self) -> UUID:
        return UUID(self.sub)


class TokenPair(BaseModel):
    """Access and refresh token issued together."""
    access_token: str
    refresh_token: str
    expires_in: int = Field(..., description="Seconds until the access token expires")


class TokenCodec:
    """
    Stateless signer/verifier for access and refresh tokens.

    No I/O; safe to share across requests.
    """

    def __init__(
        self,
        access_secret: Optional[str],
        refresh_secret: Optional[str],
        access_expires_in="15m",
        refresh_expires_in="7d",
        algorithm: str = "HS256",
    ):
        self._access_secret = access_secret or ""
        self._refresh_secret = refresh_secret or ""
        self._access_expires_in = access_expires_in
        self._refresh_expires_in = refresh_expires_in
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings) -> "TokenCodec":
        return cls(
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            access_expires_in=settings.JWT_EXPIRES_IN,
            refresh_expires_in=settings.JWT_REFRESH_EXPIRES_IN,
            algorithm=settings.JWT_ALGORITHM,
        )

    @property
    def access_lifetime(self) -> timedelta:
        return parse_duration(self._access_expires_in)

    @property
    def refresh_lifetime(self) -> timedelta:
        return parse_duration(self._refresh_expires_in)

    @property
    def access_expires_in_seconds(self) -> int:
        return int(self.access_lifetime.total_seconds())

    def ensure_configured(self) -> None:
        """
        Startup check; the process must not serve traffic without it.

        Raises:
            ConfigurationError: Missing or identical secrets, bad lifetimes
        """
        if not self._access_secret:
            raise ConfigurationError("JWT_SECRET is not defined")
        if not self._refresh_secret:
            raise ConfigurationError("JWT_REFRESH_SECRET is not defined")
        if secrets.compare_digest(self._access_secret, self._refresh_secret):
            raise ConfigurationError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        parse_duration(self._access_expires_in)
        parse_duration(self._refresh_expires_in)

    def issue_access(self, claims: TokenClaims) -> str:
        """
        Sign a short-lived access token.

        Raises:
            ConfigurationError: If JWT_SECRET is unset
        """
        if not self._access_secret:
            raise ConfigurationError("JWT_SECRET is not defined")
        return self._encode(claims, ACCESS_TOKEN_TYPE, self._access_secret, self.access_lifetime)

    def issue_refresh(self, claims: TokenClaims) -> str:
        """
        Sign a long-lived refresh token.

        Raises:
            ConfigurationError: If JWT_REFRESH_SECRET is unset
        """
        if not self._refresh_secret:
            raise ConfigurationError("JWT_REFRESH_SECRET is not defined")
        return self._encode(claims, REFRESH_TOKEN_TYPE, self._refresh_secret, self.refresh_lifetime)

    def issue_pair(self, claims: TokenClaims) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access(claims),
            refresh_token=self.issue_refresh(claims),
            expires_in=self.access_expires_in_seconds,
        )

    def verify_access(self, token: str) -> TokenPayload:
        """
        Verify signature, expiry and type of an access token.

        Raises:
            ConfigurationError: If JWT_SECRET is unset
            InvalidTokenError: For any malformed, forged or expired token
        """
        if not self._access_secret:
            raise ConfigurationError("JWT_SECRET is not defined")
        return self._decode(token, ACCESS_TOKEN_TYPE, self._access_secret)

    def verify_refresh(self, token: str) -> TokenPayload:
        """
        Verify signature, expiry and type of a refresh token.

        Raises:
            ConfigurationError: If JWT_REFRESH_SECRET is unset
            InvalidTokenError: For any malformed, forged or expired token
        """
        if not self._refresh_secret:
            raise ConfigurationError("JWT_REFRESH_SECRET is not defined")
        return self._decode(token, REFRESH_TOKEN_TYPE, self._refresh_secret)

    def _encode(self, claims: TokenClaims, token_type: str, secret: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(claims.identity_id),
            "email": claims.email,
            "username": claims.username,
            "role_id": str(claims.role_id),
            "typ": token_type,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def _decode(self, token: str, token_type: str, secret: str) -> TokenPayload:
        # One error for every failure: expired, forged and malformed look alike
        try:
            raw = jwt.decode(token, secret, algorithms=[self.algorithm])
            payload = TokenPayload(**raw)
            UUID(payload.sub)
        except (JWTError, ValidationError, ValueError, TypeError, AttributeError):
            raise InvalidTokenError() from None

        if payload.typ != token_type:
            raise InvalidTokenError()
        return payload
