"""
SindicApp - Exception Handlers

Renders auth-core errors as {detail, error_code, request_id}. Store
exceptions that escape a handler become a generic 503; their text is
logged, never returned.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from sindicapp.auth.errors import AuthError, StoreUnavailable
from sindicapp.auth.schemas import ErrorResponse
from sindicapp.logging import get_logger


logger = get_logger(__name__)


def _error_response(request: Request, exc: AuthError) -> JSONResponse:
    body = ErrorResponse(
        detail=exc.message,
        error_code=exc.error_code,
        request_id=getattr(request.state, "request_id", None),
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for AuthError and unhandled store errors."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "auth.error",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error_code=exc.error_code,
        )
        return _error_response(request, exc)

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_error(request: Request, exc: SQLAlchemyError):
        logger.error(
            "store.error",
            path=request.url.path,
            method=request.method,
            exc_info=exc,
        )
        return _error_response(request, StoreUnavailable())
