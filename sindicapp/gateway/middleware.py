"""
SindicApp - Security Middleware

Request/response middleware for:
- Request ID injection for tracing (bound into every log entry)
- Request logging with timing
- Security headers
"""

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from sindicapp.logging import get_logger, set_request_id


logger = get_logger(__name__)


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    Security-focused middleware for all incoming requests.
    
    Responsibilities:
    1. Accept or generate X-Request-ID and bind it to the logging context
    2. Log method, path, status and duration of each request
    3. Add security headers to response
    """
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process each request through security pipeline."""
        
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        request.state.request_id = request_id
        
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000
        
        logger.info(
            "http.request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        
        return response
