from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from kontaflow.config import settings
from kontaflow.db.session import shutdown
from kontaflow.dependencies import DB, AppSettings
from kontaflow.error_handlers import register_error_handlers
from kontaflow.logging import get_logger
from kontaflow.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from kontaflow.rate_limit import build_limiter
from kontaflow.routers import group

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager: code before yield runs on startup, after yield on shutdown.

    Shutdown closes database connections gracefully.
    """
    logger.info("app_started", app=settings.app_name, environment=settings.environment)
    yield
    await shutdown()
    logger.info("app_stopped")


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
app.state.limiter = build_limiter(settings)
# Last added runs first: request id, CORS, security headers, throttling
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)
register_error_handlers(app)

app.include_router(group.router, prefix="/api/groups", tags=["groups"])


@app.get("/health")
async def health(db: DB, app_settings: AppSettings) -> JSONResponse:
    """Health check endpoint: verifies database connectivity.

    Returns 200 only if the database answers a ping query, 503 otherwise.
    Used by load balancers and container orchestrators to detect unhealthy instances.
    """
    payload: dict[str, Any] = {
        "environment": app_settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("health_check_failed")
        await db.rollback()
        return JSONResponse(
            status_code=503, content={"status": "error", "database": "disconnected", **payload}
        )
    return JSONResponse(
        status_code=200, content={"status": "ok", "database": "connected", **payload}
    )


@app.get("/")
async def root(app_settings: AppSettings) -> dict[str, Any]:
    return {
        "name": app_settings.app_name,
        "version": app_settings.app_version,
        "status": "running",
        "environment": app_settings.environment,
        "endpoints": {
            "health": "/health",
            "groups": "/api/groups",
            "docs": "/docs",
        },
    }
