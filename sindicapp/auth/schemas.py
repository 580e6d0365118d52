"""
SindicApp - Authentication Request/Response Schemas

Pydantic models for API request validation and response serialization.
JSON uses camelCase (refreshToken, accessToken, ...); snake_case is also
accepted on input. Shape validation lives here, business rules do not.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID
import re

from pydantic import AliasChoices, BaseModel, EmailStr, Field, validator
from pydantic.alias_generators import to_camel

from sindicapp.auth.policy import RoleName


USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")


def _check_password_strength(v: str) -> str:
    if not re.search(r"[a-z]", v) or not re.search(r"[A-Z]", v) or not re.search(r"\d", v):
        raise ValueError(
            "Password must contain at least one lowercase letter, "
            "one uppercase letter, and one number"
        )
    return v


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class LoginRequest(CamelModel):
    """Request body for POST /auth/login."""
    identifier: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("identifier", "emailOrUsername", "email_or_username"),
        description="Email or username",
    )
    password: str = Field(..., min_length=1, max_length=128)


class RegisterRequest(CamelModel):
    """Request body for POST /auth/register."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)

    @validator("username")
    def username_format(cls, v):
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return v

    @validator("password")
    def password_strength(cls, v):
        return _check_password_strength(v)


class RefreshRequest(CamelModel):
    """Request body for POST /auth/refresh and POST /auth/logout."""
    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class ChangePasswordRequest(CamelModel):
    """Request body for POST /auth/change-password."""
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)

    @validator("new_password")
    def password_strength(cls, v):
        return _check_password_strength(v)


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Seconds until the access token expires")


class UserResponse(CamelModel):
    """Identity summary; never contains the password hash."""
    id: UUID
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_verified: bool
    role: str
    last_login: Optional[datetime] = None
    created_at: datetime


class AuthResponse(CamelModel):
    """Response body for login, register and refresh."""
    user: UserResponse
    tokens: TokenPairResponse


class MessageResponse(CamelModel):
    message: str
    sessions_invalidated: Optional[int] = None


class SessionInfo(CamelModel):
    """Session information for user display."""
    id: UUID
    created_at: datetime
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ActiveSessionsResponse(CamelModel):
    sessions: list[SessionInfo]
    total: int


class CleanSessionsResponse(CamelModel):
    message: str
    deleted: int


class CreateUserRequest(CamelModel):
    """Request body for POST /auth/users (manage_users permission)."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30)
    password: str = Field(..., min_length=8, max_length=128)
    role: RoleName = RoleName.USER
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email_verified: bool = False

    @validator("username")
    def username_format(cls, v):
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return v

    @validator("password")
    def password_strength(cls, v):
        return _check_password_strength(v)


class UserStatusRequest(CamelModel):
    """Request body for PATCH /auth/users/{user_id}/status."""
    is_active: bool


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    error_code: Optional[str] = None
    request_id: Optional[str] = None
