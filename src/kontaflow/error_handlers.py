"""Global exception handlers.

Every failure leaves the API in the same envelope:
{"error": {"code": "...", "message": "...", ...}}.

Dispatch, most specific first:
    - AppError → its own status and envelope
    - RequestValidationError / pydantic ValidationError → 400 with per-field details
    - SQLAlchemyError → translated by db/errors.py
    - RateLimitExceeded → 429 TOO_MANY_REQUESTS
    - Starlette HTTPException → unknown routes, oversized bodies, other HTTP errors
    - Exception → 500, details only in development
"""

import json
import traceback
from collections.abc import Iterable, Sequence
from http import HTTPStatus
from typing import Any

import pydantic
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from kontaflow.config import get_settings
from kontaflow.db.errors import translate_database_error
from kontaflow.exceptions import AppError, ValidationError
from kontaflow.logging import get_logger
from kontaflow.schemas.error import ErrorDetail, ErrorResponse

logger = get_logger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    handlers: list[tuple[type[Exception], Any]] = [
        (AppError, app_error_handler),
        (RequestValidationError, validation_error_handler),
        (pydantic.ValidationError, validation_error_handler),
        (SQLAlchemyError, database_error_handler),
        (RateLimitExceeded, rate_limit_handler),
        (StarletteHTTPException, http_error_handler),
        (Exception, unhandled_exception_handler),
    ]
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)


def translate_validation_errors(errors: Iterable[Any]) -> ValidationError:
    """Group pydantic error entries by dotted field path.

    Request-location prefixes are dropped, so ``("body", "primaryCountry")``
    becomes ``primaryCountry``. An error on the whole body is keyed ``body``.
    """
    details: dict[str, list[str]] = {}
    for error in errors:
        loc: Sequence[Any] = error.get("loc", ())
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        field = ".".join(str(part) for part in loc) or "body"
        details.setdefault(field, []).append(error["msg"])
    return ValidationError("Validation failed", details)


def _user_id(request: Request) -> int | None:
    user = getattr(request.state, "user", None)
    return getattr(user, "id", None)


def _request_body(request: Request) -> Any:
    raw: bytes = getattr(request.state, "body", b"")
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


def _respond(exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app_error",
        code=exc.code,
        error=exc.message,
        status=exc.status_code,
        method=request.method,
        url=str(request.url),
        user_id=_user_id(request),
    )
    return _respond(exc)


async def validation_error_handler(
    request: Request, exc: RequestValidationError | pydantic.ValidationError
) -> JSONResponse:
    error = translate_validation_errors(exc.errors())
    logger.warning("validation_error", path=request.url.path, details=error.details)
    return _respond(error)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    error = translate_database_error(exc)
    if error.is_operational:
        logger.warning("database_error", code=error.code, error=error.message)
    else:
        logger.error(
            "database_error",
            exc_info=exc,
            method=request.method,
            url=str(request.url),
            user_id=_user_id(request),
        )
    return _respond(error)


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # SlowAPIMiddleware calls the registered handler without awaiting it
    logger.warning("rate_limit_exceeded", path=request.url.path, limit=str(exc.detail))
    content = ErrorResponse(
        error=ErrorDetail(
            code="TOO_MANY_REQUESTS", message="Too many requests, please try again later"
        )
    )
    return JSONResponse(status_code=429, content=content.model_dump(exclude_none=True))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        code, message = "NOT_FOUND", f"Route {request.method} {request.url.path} not found"
    elif exc.status_code == 413:
        code, message = "PAYLOAD_TOO_LARGE", "Request body is too large"
    else:
        code, message = HTTPStatus(exc.status_code).name, str(exc.detail)
    content = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(
        status_code=exc.status_code,
        content=content.model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unhandled exceptions and return a safe error response.

    The body comes from ``request.state.body``, cached by RequestIDMiddleware.
    JSON bodies are logged parsed, anything else as text.
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        method=request.method,
        url=str(request.url),
        user_id=_user_id(request),
        path_params=request.path_params,
        query=dict(request.query_params),
        body=_request_body(request),
    )
    if get_settings().is_development:
        detail = ErrorDetail(
            code="INTERNAL_ERROR",
            message=str(exc) or type(exc).__name__,
            stack="".join(traceback.format_exception(exc)),
        )
    else:
        detail = ErrorDetail(code="INTERNAL_ERROR", message="An unexpected error occurred")
    return JSONResponse(
        status_code=500, content=ErrorResponse(error=detail).model_dump(exclude_none=True)
    )
