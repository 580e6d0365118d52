"""
SindicApp - Database Configuration

SQLModel engine setup, table creation and default role seeding.
Supports PostgreSQL (production) and SQLite (development, tests).

The engine and session factory are built once by the application and
handed to the stores that need them; nothing here is a process-wide client.

Usage:
    from sindicapp.auth.database import get_engine, init_db, get_session_factory

    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    session_factory = get_session_factory(engine)
"""

from pathlib import Path
from typing import Callable, Optional

import yaml
from sqlmodel import SQLModel, Session, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from sindicapp.logging import get_logger


logger = get_logger(__name__)

DEFAULT_ROLES_PATH = Path(__file__).parent / "roles.yaml"

SessionFactory = Callable[[], Session]


def get_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create SQLAlchemy engine with appropriate configuration.

    Args:
        database_url: SQLAlchemy URL
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # PostgreSQL with connection pooling
    return create_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


def init_db(engine: Engine) -> None:
    """
    Create roles, users and sessions tables.

    Safe to call multiple times (CREATE IF NOT EXISTS).
    """
    # Import models to register them with SQLModel
    from sindicapp.auth.models import Role, User, Session as RefreshSession  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session_factory(engine: Engine) -> SessionFactory:
    """
    Create a session factory bound to engine.

    Sessions are opened per operation and used as context managers.
    """
    def session_factory() -> Session:
        return Session(engine)

    return session_factory


def load_role_definitions(path: Optional[Path] = None) -> dict:
    """Read role name -> {description, permissions} from YAML."""
    with open(path or DEFAULT_ROLES_PATH, "r") as f:
        config = yaml.safe_load(f) or {}
    return config.get("roles", {})


def seed_default_roles(session_factory: SessionFactory, path: Optional[Path] = None) -> int:
    """
    Insert the default roles that do not exist yet.

    Existing roles are left untouched so operators can tune flags.

    Returns:
        Number of roles created
    """
    from sindicapp.auth.models import Role
    from sindicapp.auth.policy import Permission

    created = 0
    with session_factory() as db:
        for name, definition in load_role_definitions(path).items():
            existing = db.exec(select(Role).where(Role.name == name)).first()
            if existing:
                continue

            granted = {Permission(p).value for p in definition.get("permissions", [])}
            role = Role(
                name=name,
                description=definition.get("description"),
                **{p.value: p.value in granted for p in Permission},
            )
            db.add(role)
            created += 1
        db.commit()

    if created:
        logger.info("roles.seeded", created=created)
    return created
