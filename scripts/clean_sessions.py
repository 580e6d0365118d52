"""
SindicApp - Session Cleanup Script

Deletes expired and invalidated refresh-token sessions. Intended for cron
when the in-process periodic purge is disabled
(SESSION_CLEANUP_INTERVAL_MINUTES=0).

Usage:
    python -m scripts.clean_sessions
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sindicapp.config import settings
from sindicapp.logging import configure_logging, get_logger
from sindicapp.auth.database import get_engine, init_db, get_session_factory
from sindicapp.auth.errors import AuthError
from sindicapp.auth.identities import IdentityStore
from sindicapp.auth.manager import SessionManager
from sindicapp.auth.sessions import SessionLedger
from sindicapp.auth.tokens import TokenCodec


logger = get_logger("scripts.clean_sessions")


def main() -> int:
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    session_factory = get_session_factory(engine)
    
    codec = TokenCodec.from_settings(settings)
    manager = SessionManager(
        codec,
        SessionLedger(session_factory, codec.refresh_lifetime),
        IdentityStore(session_factory),
    )
    
    try:
        deleted = asyncio.run(manager.clean_expired_sessions())
    except AuthError as e:
        logger.error("auth.sessions.purge_failed", error_code=e.error_code)
        return 1
    finally:
        engine.dispose()
    
    print(f"Deleted {deleted} expired or invalidated sessions.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
