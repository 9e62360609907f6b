"""Unit tests for contractum/core/logging.py."""

import logging
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import orjson
import pytest
from pytest_mock import MockerFixture

from contractum.core import logging as logging_module
from contractum.core.config import Settings
from contractum.core.constants import REDACTED
from contractum.core.logging import (
    InterceptHandler,
    format_console_with_context,
    serialize_for_json,
    setup_logging,
)


def make_record(**extra: Any) -> dict[str, Any]:
    """Build a minimal Loguru-like record."""
    return {
        "time": datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
        "level": SimpleNamespace(name="INFO"),
        "message": "Request completed",
        "name": "contractum.api",
        "function": "dispatch",
        "line": 42,
        "extra": extra,
        "exception": None,
    }


@pytest.mark.unit
class TestFormatters:
    """Test cases for the console and JSON formatters."""

    def test_console_format_inlines_priority_fields_first(self) -> None:
        """Test that priority fields come before other context."""
        record = make_record(
            zeta="z",
            operation_id="listItems",
            correlation_id="0123456789abcdef",
            duration_ms=12,
        )

        formatted = format_console_with_context(record)

        assert "[<yellow>01234567</yellow>]" in formatted
        assert formatted.index("operation_id=listItems") < formatted.index("zeta=z")
        assert "12ms" in formatted
        assert formatted.endswith("{message}\n")

    def test_console_format_escapes_braces(self) -> None:
        """Test that context values cannot inject format placeholders."""
        formatted = format_console_with_context(make_record(path="/items/{id}"))

        assert "path=/items/{{id}}" in formatted

    def test_json_format(self) -> None:
        """Test the structured JSON line."""
        line = serialize_for_json(
            make_record(operation_id="listItems", _internal="hidden")
        )

        entry = orjson.loads(line)
        assert line.endswith("\n")
        assert entry["level"] == "INFO"
        assert entry["message"] == "Request completed"
        assert entry["operation_id"] == "listItems"
        assert "_internal" not in entry
        assert entry["timestamp"].startswith("2024-01-02T03:04:05")

    def test_sensitive_fields_are_redacted(self, mocker: MockerFixture) -> None:
        """Test that configured sensitive keys are masked in both formats."""
        mocker.patch.object(logging_module, "_sensitive_fields", {"api_key"})

        entry = orjson.loads(serialize_for_json(make_record(api_key="secret")))
        formatted = format_console_with_context(make_record(api_key="secret"))

        assert entry["api_key"] == REDACTED
        assert f"api_key={REDACTED}" in formatted


@pytest.mark.unit
class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_configures_once(self, mocker: MockerFixture) -> None:
        """Test that repeated calls do not reconfigure Loguru."""
        mocker.patch.object(logging_module._state, "configured", False)
        mock_logger = mocker.patch("contractum.core.logging.logger")
        mocker.patch("contractum.core.logging.logging.basicConfig")
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            environment="production",
        )

        setup_logging(settings)
        setup_logging(settings)

        mock_logger.remove.assert_called_once()
        mock_logger.add.assert_called_once()
        assert logging_module._state.configured is True

    def test_uvicorn_loggers_are_intercepted(self, mocker: MockerFixture) -> None:
        """Test that uvicorn output is routed through the intercept handler."""
        mocker.patch.object(logging_module._state, "configured", False)
        mocker.patch("contractum.core.logging.logger")
        mocker.patch("contractum.core.logging.logging.basicConfig")

        setup_logging(Settings(_env_file=None))  # type: ignore[call-arg]

        uvicorn_logger = logging.getLogger("uvicorn")
        assert isinstance(uvicorn_logger.handlers[0], InterceptHandler)
        assert uvicorn_logger.propagate is False


@pytest.mark.unit
class TestInterceptHandler:
    """Test cases for InterceptHandler."""

    def test_emit_forwards_to_loguru(self, mocker: MockerFixture) -> None:
        """Test that standard records are re-logged through Loguru."""
        mock_logger = mocker.patch("contractum.core.logging.logger")
        mock_logger.level.return_value = SimpleNamespace(name="WARNING")
        record = logging.LogRecord(
            "uvicorn.error", logging.WARNING, __file__, 1, "port %s busy", (80,), None
        )

        InterceptHandler().emit(record)

        mock_logger.opt.return_value.log.assert_called_once_with(
            "WARNING", "port 80 busy"
        )
