"""
SindicApp - Authentication Error Taxonomy

Every failure of the auth core is raised as an AuthError subclass carrying
its HTTP status and a stable error code. Messages are deliberately generic:
callers must not be able to tell an expired token from a tampered or
revoked one, or a wrong password from an unknown account.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for auth-core exceptions mapped to HTTP responses."""

    status_code: int = 400
    error_code: str = "auth_error"
    default_message: str = "Authentication error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(AuthError):
    """Missing or inconsistent security configuration. Fatal at startup."""
    status_code = 500
    error_code = "configuration_error"
    default_message = "Authentication is not configured"


class InvalidCredentials(AuthError):
    """Login or password check failed. Never says which field was wrong."""
    status_code = 401
    error_code = "invalid_credentials"
    default_message = "Invalid credentials"


class InvalidTokenError(AuthError):
    """Token is malformed, forged, expired or of the wrong type."""
    status_code = 401
    error_code = "invalid_token"
    default_message = "Invalid or expired token"


class InvalidOrExpiredToken(InvalidTokenError):
    """Refresh token unusable: not in the ledger, revoked, expired or tampered."""
    default_message = "Invalid or expired refresh token"


class IdentityUnavailable(AuthError):
    """Identity was deleted or deactivated after the token was issued."""
    status_code = 401
    error_code = "identity_unavailable"
    default_message = "User not found or inactive"


class Unauthenticated(AuthError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "Authentication required"


class Forbidden(AuthError):
    status_code = 403
    error_code = "forbidden"
    default_message = "Insufficient permissions"


class NotFound(AuthError):
    status_code = 404
    error_code = "not_found"
    default_message = "Not found"


class ConflictError(AuthError):
    """Unique constraint violated (duplicate account or refresh token)."""
    status_code = 409
    error_code = "conflict"
    default_message = "Resource already exists"


class StoreUnavailable(AuthError):
    """The database failed; the original exception is logged, not exposed."""
    status_code = 503
    error_code = "store_unavailable"
    default_message = "Service temporarily unavailable"
