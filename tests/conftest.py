"""
SindicApp - Test Configuration

Pytest fixtures for the auth core: in-memory database, wired services,
user factories and an HTTP client.
"""

import pytest
from typing import Generator, Optional

from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine, select
from sqlalchemy.pool import StaticPool

from sindicapp.app import create_app
from sindicapp.config import Settings
from sindicapp.auth.database import get_session_factory, init_db, seed_default_roles
from sindicapp.auth.gate import AccessGate
from sindicapp.auth.identities import IdentityStore
from sindicapp.auth.manager import SessionManager
from sindicapp.auth.models import Role, User
from sindicapp.auth.password import PasswordHasher
from sindicapp.auth.sessions import SessionLedger
from sindicapp.auth.tokens import TokenCodec


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"

# Lowest bcrypt cost keeps the suite fast
TEST_WORK_FACTOR = 4


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        JWT_SECRET=ACCESS_SECRET,
        JWT_REFRESH_SECRET=REFRESH_SECRET,
        DATABASE_URL=TEST_DATABASE_URL,
        BCRYPT_WORK_FACTOR=TEST_WORK_FACTOR,
        SESSION_CLEANUP_INTERVAL_MINUTES=0,
        LOG_LEVEL="WARNING",
        LOG_JSON=False,
    )


@pytest.fixture(scope="function")
def test_engine():
    """Create a fresh test database engine for each test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    seed_default_roles(get_session_factory(engine))
    
    yield engine
    
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return get_session_factory(test_engine)


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for arranging and inspecting rows."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(work_factor=TEST_WORK_FACTOR)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET, "15m", "7d")


@pytest.fixture
def identities(session_factory) -> IdentityStore:
    return IdentityStore(session_factory)


@pytest.fixture
def ledger(session_factory, codec) -> SessionLedger:
    return SessionLedger(session_factory, codec.refresh_lifetime)


@pytest.fixture
def manager(codec, ledger, identities, hasher) -> SessionManager:
    return SessionManager(codec, ledger, identities, hasher=hasher)


@pytest.fixture
def gate(codec, identities) -> AccessGate:
    return AccessGate(codec, identities)


@pytest.fixture
def make_user(db_session, hasher):
    """Factory inserting a user with the given role name."""
    def _make_user(
        email: str,
        username: str,
        password: str,
        role: str = "user",
        is_active: bool = True,
        first_name: Optional[str] = None,
    ) -> User:
        role_row = db_session.exec(select(Role).where(Role.name == role)).one()
        user = User(
            email=email,
            username=username,
            password_hash=hasher.hash(password),
            role_id=role_row.id,
            is_active=is_active,
            email_verified=True,
            first_name=first_name,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    
    return _make_user


@pytest.fixture
def sample_user(make_user) -> User:
    return make_user("user@example.com", "sampleuser", "Correct1pw", first_name="John")


@pytest.fixture
def test_admin(make_user) -> User:
    return make_user("admin@sindicapp.com", "admin", "AdminPass123", role="admin")


@pytest.fixture
def test_moderator(make_user) -> User:
    return make_user("moderator@sindicapp.com", "moderator", "ModPass123", role="moderator")


@pytest.fixture
def inactive_user(make_user) -> User:
    return make_user("inactive@example.com", "inactive", "InactivePass123", is_active=False)


@pytest.fixture(scope="function")
def client(test_settings, test_engine) -> Generator[TestClient, None, None]:
    """Test client over the shared in-memory database."""
    app = create_app(test_settings, engine=test_engine)
    with TestClient(app) as c:
        yield c


def login_user(client: TestClient, identifier: str, password: str) -> Optional[dict]:
    """Helper function to login and return the token pair."""
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": identifier, "password": password},
    )
    return response.json()["tokens"] if response.status_code == 200 else None


def auth_headers(access_token: str) -> dict:
    """Create authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {access_token}"}
