"""Structlog setup for the forum API.

All entries, structlog and stdlib alike, run through the same processor
chain before rendering:

1. request context (request_id, user_id, trace_id)
2. credential masking (tokens, secrets, Authorization headers)
3. clipping of long text values, so reply bodies never flood the logs
4. level, logger name, ISO timestamp and optional call site

Output is colored console text in development or JSON lines otherwise,
plus optional rotating JSON files.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor

from src.core.context import get_context


if TYPE_CHECKING:
    from src.config.settings import Settings


SENSITIVE_KEYS = ("password", "secret", "token", "authorization", "api_key", "credential")

MAX_LOGGED_TEXT = 500

_NOISY_LOGGERS = ("uvicorn.access", "cassandra", "httpx")


def add_request_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key, value in get_context().items():
        event_dict.setdefault(key, value)
    return event_dict


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def _scrub(key: str, value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _scrub(k, v) for k, v in value.items()}
    if not isinstance(value, str):
        return value
    if _is_sensitive(key):
        return value[:2] + "***" if len(value) > 8 else "***"
    if len(value) > MAX_LOGGED_TEXT:
        return f"{value[:MAX_LOGGED_TEXT]}... ({len(value)} chars)"
    return value


def scrub_event(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask credentials and clip oversized strings."""
    return {
        key: value if key == "event" else _scrub(key, value)
        for key, value in event_dict.items()
    }


def _shared_processors(settings: "Settings") -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_context,
        scrub_event,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.log_include_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )
    return processors


def _rotating_file(path: Path, level: int, settings: "Settings") -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=settings.log_file_max_bytes,
        backupCount=settings.log_file_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def configure_structlog(settings: "Settings", log_dir: Path | str | None = None) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        settings: Application settings
        log_dir: Where log files go when ``log_to_file`` is on
            (defaults to ``settings.log_dir``)
    """
    level = logging.getLevelName(settings.log_level)
    shared = _shared_processors(settings)

    if settings.log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)
    )
    handlers: list[logging.Handler] = [console]

    if settings.log_to_file:
        directory = Path(log_dir or settings.log_dir)
        json_formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(), foreign_pre_chain=shared
        )
        for filename, file_level in (
            (f"{settings.app_name}.log", level),
            (f"{settings.app_name}.error.log", logging.ERROR),
        ):
            handler = _rotating_file(directory / filename, file_level, settings)
            handler.setFormatter(json_formatter)
            handlers.append(handler)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
