"""Tests for the global error handlers and request middleware."""

from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kontaflow.config import Settings
from kontaflow.error_handlers import register_error_handlers, translate_validation_errors
from kontaflow.exceptions import ConflictError
from kontaflow.middleware import REQUEST_ID_HEADER, RequestIDMiddleware


class _DuplicateEmail(Exception):
    sqlstate = "23505"
    detail = "Key (email)=(ana@kontaflow.test) already exists."


def _build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.post("/boom")
    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("disk on fire")

    @app.get("/conflict")
    async def conflict() -> None:
        raise ConflictError("Email already registered", "email")

    @app.get("/duplicate")
    async def duplicate() -> None:
        raise IntegrityError("INSERT ...", {}, _DuplicateEmail("duplicate key"))

    @app.post("/explode")
    async def explode(payload: dict[str, str]) -> None:
        raise RuntimeError(f"cannot handle {payload['name']}")

    @app.post("/echo")
    async def echo(payload: dict[str, int]) -> dict[str, int]:
        return payload

    return app


class _RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def error(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    warning = info = error


@pytest_asyncio.fixture
async def raw_client() -> AsyncIterator[AsyncClient]:
    """Client that turns unhandled exceptions into responses instead of re-raising."""
    async with AsyncClient(
        transport=ASGITransport(app=_build_app(), raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client


# ---------------------------------------------------------------------------
# 1. translate_validation_errors
# ---------------------------------------------------------------------------
def test_translate_validation_errors_groups_by_field() -> None:
    errors = [
        {"loc": ("body", "name"), "msg": "Name must be at least 3 characters"},
        {"loc": ("body", "name"), "msg": "Name cannot exceed 200 characters"},
        {"loc": ("query", "primaryCountry"), "msg": "Invalid country"},
        {"loc": ("body", "address", "street"), "msg": "Field required"},
        {"loc": ("id",), "msg": "ID must be a number"},
        {"loc": ("body",), "msg": "Field required"},
    ]

    error = translate_validation_errors(errors)

    assert error.status_code == 400
    assert error.details == {
        "name": ["Name must be at least 3 characters", "Name cannot exceed 200 characters"],
        "primaryCountry": ["Invalid country"],
        "address.street": ["Field required"],
        "id": ["ID must be a number"],
        "body": ["Field required"],
    }


# ---------------------------------------------------------------------------
# 2. Handler dispatch
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_app_error_keeps_its_extra_field(raw_client: AsyncClient) -> None:
    resp = await raw_client.get("/conflict")

    assert resp.status_code == 409
    assert resp.json() == {
        "error": {"code": "CONFLICT", "message": "Email already registered", "field": "email"}
    }


@pytest.mark.asyncio
async def test_integrity_error_is_translated(raw_client: AsyncClient) -> None:
    resp = await raw_client.get("/duplicate")

    assert resp.status_code == 409
    assert resp.json()["error"]["field"] == "email"


@pytest.mark.asyncio
async def test_malformed_body_is_400(raw_client: AsyncClient) -> None:
    resp = await raw_client.post("/echo", json={"count": "many"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert "count" in resp.json()["error"]["details"]


@pytest.mark.asyncio
async def test_unknown_route_is_404_with_method_and_path(raw_client: AsyncClient) -> None:
    resp = await raw_client.get("/api/nowhere")

    assert resp.status_code == 404
    assert resp.json() == {
        "error": {"code": "NOT_FOUND", "message": "Route GET /api/nowhere not found"}
    }


@pytest.mark.asyncio
async def test_wrong_method_keeps_http_status(raw_client: AsyncClient) -> None:
    resp = await raw_client.delete("/conflict")

    assert resp.status_code == 405
    assert resp.json()["error"]["code"] == "METHOD_NOT_ALLOWED"


# ---------------------------------------------------------------------------
# 3. Unhandled exceptions
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_unhandled_error_in_development_exposes_message_and_stack(
    raw_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        "kontaflow.error_handlers.get_settings", lambda: Settings(environment="development")
    )

    resp = await raw_client.get("/boom")

    assert resp.status_code == 500
    error = resp.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert error["message"] == "disk on fire"
    assert "RuntimeError" in error["stack"]


@pytest.mark.asyncio
async def test_unhandled_error_in_production_is_generic(
    raw_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        "kontaflow.error_handlers.get_settings", lambda: Settings(environment="production")
    )

    resp = await raw_client.get("/boom")

    assert resp.status_code == 500
    assert resp.json() == {
        "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}
    }


@pytest.mark.asyncio
async def test_unhandled_error_logs_the_request_body(
    raw_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    recorder = _RecordingLogger()
    monkeypatch.setattr("kontaflow.error_handlers.logger", recorder)

    resp = await raw_client.post("/explode?dry=1", json={"name": "Grupo Norte"})

    assert resp.status_code == 500
    [(event, fields)] = recorder.events
    assert event == "unhandled_exception"
    assert fields["method"] == "POST"
    assert fields["query"] == {"dry": "1"}
    assert fields["body"] == {"name": "Grupo Norte"}


@pytest.mark.asyncio
async def test_unhandled_error_logs_non_json_body_as_text(
    raw_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    recorder = _RecordingLogger()
    monkeypatch.setattr("kontaflow.error_handlers.logger", recorder)

    resp = await raw_client.post("/boom", content=b"name=\xff")

    assert resp.status_code == 500
    [(event, fields)] = recorder.events
    assert event == "unhandled_exception"
    assert fields["body"] == "name=\ufffd"


# ---------------------------------------------------------------------------
# 4. Request ID middleware
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_request_id_is_echoed(raw_client: AsyncClient) -> None:
    resp = await raw_client.get("/conflict", headers={REQUEST_ID_HEADER: "req-123"})

    assert resp.headers[REQUEST_ID_HEADER] == "req-123"


@pytest.mark.asyncio
async def test_request_id_is_generated_when_missing(
    client: AsyncClient, db: AsyncSession
) -> None:
    resp = await client.get("/health")

    assert len(resp.headers[REQUEST_ID_HEADER]) == 36
