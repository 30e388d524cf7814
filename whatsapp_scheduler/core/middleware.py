"""
Request middleware: correlation id, access logging and path-scoped CORS.
"""

import time
import structlog
from typing import Callable, Iterable
from fastapi import Request, Response
from asgi_correlation_id import CorrelationIdMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Liveness probes hit these every few seconds
QUIET_PATHS = {"/", "/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request with method, path, status and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        log = logger.bind(
            method=request.method,
            path=path,
            client_ip=request.client.host if request.client else "unknown",
        )

        try:
            response = await call_next(request)
        except Exception:
            log.exception("Request failed", duration_ms=_elapsed_ms(started))
            raise

        level = log.warning if response.status_code >= 400 else log.info
        level("Request handled", status_code=response.status_code, duration_ms=_elapsed_ms(started))
        return response


class ScopedCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that leaves some paths alone.

    Routes listed in ``exclude_paths`` answer preflights and set their own
    CORS headers, so the middleware must not short-circuit them.
    """

    def __init__(self, app: ASGIApp, exclude_paths: Iterable[str] = (), **kwargs):
        super().__init__(app, **kwargs)
        self.exclude_paths = frozenset(exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.exclude_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def setup_middleware(app):
    """Install request logging, wrapped by the correlation id middleware."""
    app.add_middleware(RequestLoggingMiddleware)

    # Added last so it runs first and the id is bound before logging
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name=REQUEST_ID_HEADER,
        update_request_header=True,
    )
