"""Structured logging with Loguru.

Formatter types:
- **console**: Human-readable with inline context (development)
- **json**: Structured one-line JSON records (everything else)

Standard library logging (uvicorn, httpx, ...) is intercepted and routed
through Loguru so all output shares one format. Context bound with
``logger.bind()`` or ``logger.contextualize()`` (operation ids, correlation
ids, methods, paths) is rendered inline by the console formatter and as
top-level keys by the JSON formatter.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Final, Protocol, cast

import orjson
from loguru import logger

from contractum.core.constants import REDACTED


class _LoggingState:
    """Simple state holder to track if logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()


class LogConfigProtocol(Protocol):
    """Protocol for log configuration objects."""

    @property
    def log_level(self) -> str:
        """Logging level."""
        ...

    @property
    def log_formatter_type(self) -> str | None:
        """Log formatter type."""
        ...

    @property
    def sensitive_fields(self) -> list[str]:
        """Field names to redact."""
        ...


class SettingsProtocol(Protocol):
    """Protocol for settings objects that setup_logging can accept."""

    @property
    def debug(self) -> bool:
        """Debug mode flag."""
        ...

    @property
    def log_config(self) -> LogConfigProtocol:
        """Log configuration."""
        ...


CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100

# Fields rendered first, in this order, by the console formatter
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "operation_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
)

_sensitive_fields: set[str] = set()


def _escape(value: object) -> str:
    return str(value).replace("{", "{{").replace("}", "}}").replace("<", r"\<")


def _format_field(key: str, value: object) -> str:
    """Format one context field for console display."""
    if key == "correlation_id" and len(str(value)) > CORRELATION_ID_DISPLAY_LENGTH:
        return _escape(str(value)[:CORRELATION_ID_DISPLAY_LENGTH])
    if key == "duration_ms":
        return f"{value}ms"

    str_value = str(value)
    if key in _sensitive_fields:
        str_value = REDACTED
    elif len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format log record for console with all context fields visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Format string for Loguru with the context already inlined.
    """
    extra = record.get("extra", {})
    context_parts = [
        f"[<yellow>{_format_field(field, extra[field])}</yellow>]"
        for field in PRIORITY_FIELDS
        if extra.get(field) is not None
    ]
    context_parts.extend(
        f"[<dim>{_format_field(key, value)}</dim>]"
        for key, value in extra.items()
        if key not in PRIORITY_FIELDS and not key.startswith("_") and value is not None
    )

    parts = [
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green>",
        "<level>{level: <8}</level>",
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>",
    ]
    if context_parts:
        parts.append(" ".join(context_parts))
    parts.append("{message}")

    formatted = " | ".join(parts) + "\n"
    if record.get("exception"):
        formatted += "{exception}"
    return formatted


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format log record as a single JSON line.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if extra := record.get("extra", {}):
        log_entry.update(
            {
                k: REDACTED if k in _sensitive_fields else v
                for k, v in extra.items()
                if not k.startswith("_")
            }
        )

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return orjson.dumps(log_entry, default=str).decode() + "\n"


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        try:
            frame, depth = sys._getframe(6), 6
            while frame and frame.f_code.co_filename == logging.__file__:
                if frame.f_back is None:
                    break
                frame = frame.f_back
                depth += 1
        except ValueError:
            depth = 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(settings: SettingsProtocol) -> None:
    """Configure Loguru once for the whole process.

    Args:
        settings: Application settings containing log configuration.
    """
    if _state.configured:
        return

    logger.remove()
    _sensitive_fields.update(settings.log_config.sensitive_fields)

    formatter_type = settings.log_config.log_formatter_type or "console"

    if formatter_type == "console":
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=settings.log_config.log_level,
            enqueue=True,
            colorize=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )
    else:

        def structured_sink(message: object) -> None:
            """Write structured records to stdout."""
            if hasattr(message, "record"):
                sys.stdout.write(serialize_for_json(message.record))
                sys.stdout.flush()

        logger.add(
            structured_sink,
            level=settings.log_config.log_level,
            enqueue=True,
            diagnose=False,
            backtrace=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = [InterceptHandler()]
        uvicorn_logger.propagate = False

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        log_level=settings.log_config.log_level,
    )
    _state.configured = True
