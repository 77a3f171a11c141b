"""Request tracing and response hardening middleware."""

import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from kontaflow.logging import get_logger

REQUEST_ID_HEADER = "X-Request-ID"
BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Browser hardening headers sent on every response. No Content-Security-Policy:
# the API only serves JSON and the interactive docs need inline scripts.
SECURITY_HEADERS = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Correlate every log line of a request and write one access log entry.

    The id comes from ``X-Request-ID`` when the caller sends one and is echoed
    back on the response. Request bodies are kept on ``request.state.body`` so
    the catch-all error handler can log what the client sent.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        if request.method in BODY_METHODS:
            # Starlette replays the cached body to the endpoint
            request.state.body = await request.body()

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[REQUEST_ID_HEADER] = request_id

        # request.state.user is set by the auth dependency, absent on public routes
        user = getattr(request.state, "user", None)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
            user_id=getattr(user, "id", None),
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add ``SECURITY_HEADERS`` to responses that do not already set them."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
