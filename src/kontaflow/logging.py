"""structlog setup for the KontaFlow API.

Every record goes to stdout through the stdlib root logger, so uvicorn and
SQLAlchemy lines share the same format as ours. Fields bound with
``structlog.contextvars`` (request_id, user_id) ride along on every event
emitted while a request is in flight.
"""

import logging
import logging.config
import sys
from datetime import UTC, datetime
from typing import Any, Literal

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from structlog.stdlib import BoundLogger


def _utc_timestamp(
    _logger: object, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


class LoggingSettings(BaseSettings):
    """``LOG_LEVEL`` and ``LOG_FORMAT``, read apart from the app settings."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # json for log shippers, console for a terminal
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def configure_logging(settings: LoggingSettings) -> None:
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _utc_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Any
    if settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Third-party stdlib records get the same fields via foreign_pre_chain
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "kontaflow": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": renderer,
                    "foreign_pre_chain": shared_processors,
                },
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "kontaflow",
                    "stream": sys.stdout,
                },
            },
            "loggers": {
                "": {"handlers": ["stdout"], "level": settings.log_level, "propagate": True},
            },
        }
    )


configure_logging(LoggingSettings())


def get_logger(name: str) -> BoundLogger:
    """Module logger; events are snake_case names plus keyword fields.

        get_logger(__name__).info("group_created", group_id=12, user_id=1)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
