"""
SindicApp - Database Seed Script

Creates the default roles, an admin account and a sample user for
development.

Usage:
    python -m scripts.seed_users
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sindicapp.config import settings
from sindicapp.auth.database import get_engine, init_db, get_session_factory, seed_default_roles
from sindicapp.auth.errors import ConflictError
from sindicapp.auth.identities import IdentityStore
from sindicapp.auth.password import PasswordHasher
from sindicapp.auth.policy import RoleName


DEMO_USERS = [
    # email, username, password, role, first name, last name
    ("admin@sindicapp.com", "admin", "Admin@Sindic2024", RoleName.ADMIN, "System", "Administrator"),
    ("moderator@sindicapp.com", "moderator", "Moderator@2024", RoleName.MODERATOR, "Forum", "Moderator"),
    ("user@example.com", "sampleuser", "Correct1pw", RoleName.USER, "John", "Doe"),
]


async def seed_users(identities: IdentityStore, hasher: PasswordHasher) -> None:
    """Create demo accounts that do not exist yet."""
    for email, username, password, role, first_name, last_name in DEMO_USERS:
        try:
            await identities.create(
                email=email,
                username=username,
                password_hash=hasher.hash(password),
                role_name=role.value,
                first_name=first_name,
                last_name=last_name,
                email_verified=True,
            )
        except ConflictError:
            print(f"User {email} already exists.")
            continue
        print(f"Created user: {email} / {password} ({role.value})")


def main():
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    session_factory = get_session_factory(engine)
    
    created = seed_default_roles(session_factory)
    print(f"Roles created: {created}")
    
    identities = IdentityStore(session_factory)
    hasher = PasswordHasher(work_factor=settings.BCRYPT_WORK_FACTOR)
    asyncio.run(seed_users(identities, hasher))
    
    engine.dispose()


if __name__ == "__main__":
    print("=" * 50)
    print("SindicApp - User Seed Script")
    print("=" * 50)
    
    main()
    
    print()
    print("Done!")
