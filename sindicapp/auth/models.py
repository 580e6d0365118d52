"""
SindicApp - Authentication Database Models

SQLModel-based models for identities, roles and refresh-token sessions.
Uses PostgreSQL for production, SQLite for local development.

Security:
- Passwords stored as bcrypt hashes only
- Every refresh token is a server-side row so it can be revoked immediately
- All timestamps are naive UTC
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, String, Text, Boolean, DateTime


def utcnow() -> datetime:
    """Current time as naive UTC, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(SQLModel, table=True):
    """
    Permission record referenced by every user.

    Authorization is a lookup on these flags; the role name is a label.

    Attributes:
        id: Unique identifier (UUIDv4)
        name: Unique role label ("user", "moderator", "admin")
        can_*: Boolean permission flags
    """
    __tablename__ = "roles"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(
        sa_column=Column(String(50), unique=True, index=True, nullable=False),
        description="Role label"
    )
    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    can_create_posts: bool = Field(default=False)
    can_moderate_posts: bool = Field(default=False)
    can_manage_users: bool = Field(default=False)
    can_view_reports: bool = Field(default=False)
    can_manage_company: bool = Field(default=False)
    can_admin_system: bool = Field(default=False)

    users: list["User"] = Relationship(back_populates="role")


class User(SQLModel, table=True):
    """
    User account (identity) for authentication.

    Attributes:
        id: Unique identifier (UUIDv4)
        email: Login identifier (unique, case-sensitive match)
        username: Alternate login identifier (unique, case-sensitive match)
        password_hash: bcrypt hash (never store plaintext)
        role_id: Exactly one role per user
        is_active: Inactive users cannot login, refresh or authenticate
        last_login: Updated on successful login (best effort)
    """
    __tablename__ = "users"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique user identifier"
    )
    email: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
        description="User email address (login identifier)"
    )
    username: str = Field(
        sa_column=Column(String(30), unique=True, index=True, nullable=False),
        description="Public handle (login identifier)"
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="bcrypt password hash"
    )
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    email_verified: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False),
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
        description="Whether user can authenticate"
    )
    role_id: UUID = Field(
        foreign_key="roles.id",
        nullable=False,
        index=True,
        description="Reference to role"
    )
    last_login: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, default=utcnow),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow),
    )

    # Relationships
    role: Optional[Role] = Relationship(back_populates="users")
    sessions: list["Session"] = Relationship(back_populates="user")


class Session(SQLModel, table=True):
    """
    Server-side refresh-token session.

    One row per login or refresh. A row is usable only while is_valid is
    set, expires_at lies in the future and the owning user is active.

    Attributes:
        id: Unique session identifier (UUIDv4)
        refresh_token: Opaque refresh token string (globally unique)
        user_id: Foreign key to user
        user_agent: Client user-agent for audit
        ip_address: Client IP for audit
        expires_at: Refresh token expiry
        is_valid: Cleared by logout, logout-all, password change and rotation
        created_at: Session creation timestamp
    """
    __tablename__ = "sessions"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique session identifier"
    )
    refresh_token: str = Field(
        sa_column=Column(Text, unique=True, index=True, nullable=False),
        description="Issued refresh token"
    )
    user_id: UUID = Field(
        foreign_key="users.id",
        nullable=False,
        index=True,
        description="Reference to user"
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(512), nullable=True),
    )
    ip_address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(45), nullable=True),
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, index=True),
    )
    is_valid: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, default=utcnow),
    )

    # Relationships
    user: Optional[User] = Relationship(back_populates="sessions")
