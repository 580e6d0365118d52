"""
SindicApp - FastAPI Application Entrypoint

This module builds the FastAPI application with:
- CORS and security middleware
- Authentication routes and dependencies
- Database lifecycle management and default role seeding
- Periodic purge of expired sessions

Startup fails with ConfigurationError when the signing secrets are
missing; the process never serves traffic without them.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from sindicapp import __version__
from sindicapp.config import Settings, settings as default_settings
from sindicapp.logging import configure_logging, get_logger
from sindicapp.gateway.error_handling import register_exception_handlers
from sindicapp.gateway.middleware import SecurityMiddleware
from sindicapp.auth.database import get_engine, init_db, get_session_factory, seed_default_roles
from sindicapp.auth.dependencies import AuthServices
from sindicapp.auth.errors import AuthError
from sindicapp.auth.gate import AccessGate
from sindicapp.auth.identities import IdentityStore
from sindicapp.auth.manager import SessionManager
from sindicapp.auth.password import PasswordHasher
from sindicapp.auth.routes import router as auth_router
from sindicapp.auth.sessions import SessionLedger
from sindicapp.auth.tokens import TokenCodec


logger = get_logger(__name__)


def build_auth_services(app_settings: Settings, session_factory) -> AuthServices:
    """
    Wire codec, stores, manager and gate for one application.

    Raises:
        ConfigurationError: Secrets missing or identical, bad lifetimes
    """
    codec = TokenCodec.from_settings(app_settings)
    codec.ensure_configured()

    identities = IdentityStore(session_factory)
    ledger = SessionLedger(session_factory, codec.refresh_lifetime)
    manager = SessionManager(
        codec,
        ledger,
        identities,
        hasher=PasswordHasher(work_factor=app_settings.BCRYPT_WORK_FACTOR),
    )
    gate = AccessGate(codec, identities)
    return AuthServices(manager=manager, gate=gate, ledger=ledger, identities=identities)


async def run_session_cleanup(manager: SessionManager, interval_seconds: float) -> None:
    """Purge dead sessions forever; failures are logged and retried next tick."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await manager.clean_expired_sessions()
        except AuthError as e:
            logger.warning("auth.sessions.purge_failed", error_code=e.error_code)
        except Exception:
            logger.exception("auth.sessions.purge_failed")


def create_app(app_settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application.

    Args:
        app_settings: Settings to use (environment by default)
        engine: Pre-built engine (tests); created from DATABASE_URL otherwise
    """
    app_settings = app_settings or default_settings
    configure_logging(app_settings.LOG_LEVEL, app_settings.LOG_JSON)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
            - Validate token configuration (fatal on failure)
            - Create tables and seed default roles
            - Start the periodic session purge
        
        Shutdown:
            - Stop the purge task and dispose the engine
        """
        db_engine = engine or get_engine(app_settings.DATABASE_URL)
        try:
            init_db(db_engine)
            session_factory = get_session_factory(db_engine)
            seed_default_roles(session_factory)

            app.state.settings = app_settings
            app.state.db_engine = db_engine
            app.state.auth = build_auth_services(app_settings, session_factory)
        except Exception:
            if engine is None:
                db_engine.dispose()
            raise

        cleanup_task = None
        interval = app_settings.SESSION_CLEANUP_INTERVAL_MINUTES
        if interval > 0:
            cleanup_task = asyncio.create_task(
                run_session_cleanup(app.state.auth.manager, interval * 60)
            )
        logger.info("app.started", version=__version__, session_cleanup_minutes=interval)

        yield

        if cleanup_task:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass
        if engine is None:
            db_engine.dispose()

    app = FastAPI(
        title="SindicApp",
        description="Company forums, posts and anonymous workplace reports",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "PUT", "PATCH"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    app.add_middleware(SecurityMiddleware)
    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint for local dev tooling."""
        return {"status": "healthy", "version": __version__}

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "SindicApp",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
