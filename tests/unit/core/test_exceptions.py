"""Unit tests for contractum/core/exceptions.py."""

import pytest
from starlette.responses import PlainTextResponse

from contractum.core.exceptions import (
    BodyValidationError,
    ConfigurationError,
    ContractLoadError,
    ContractumError,
    ContractViolationError,
    ErrorCode,
    ForbiddenError,
    HandlerError,
    NotFoundError,
    NotImplementedOperationError,
    ParameterValidationError,
    ResponseException,
    Severity,
    UnauthorizedError,
    UnsupportedMediaTypeError,
)


@pytest.mark.unit
class TestContractumError:
    """Test cases for the base exception."""

    def test_accepts_enum_or_string_codes(self) -> None:
        """Test that error codes are stored as strings."""
        assert ContractumError(ErrorCode.NOT_FOUND, "x").error_code == "NOT_FOUND"
        assert ContractumError("CUSTOM", "x").error_code == "CUSTOM"

    def test_defaults(self) -> None:
        """Test default status, severity and context."""
        error = ContractumError("CUSTOM", "Something failed")

        assert error.status_code == 500
        assert error.severity == Severity.MEDIUM
        assert error.context == {}
        assert error.details is None
        assert error.is_expected
        assert str(error) == "[CUSTOM] Something failed"

    def test_cause_is_chained(self) -> None:
        """Test that the cause becomes __cause__."""
        cause = KeyError("k")
        error = ContractumError("CUSTOM", "x", cause=cause)

        assert error.cause is cause
        assert error.__cause__ is cause

    def test_repr_includes_context(self) -> None:
        """Test the developer representation."""
        error = ContractumError("CUSTOM", "x", 418, context={"a": 1})

        assert repr(error) == (
            "ContractumError(error_code='CUSTOM', message='x', status_code=418, "
            "severity=MEDIUM, context={'a': 1})"
        )


@pytest.mark.unit
class TestPipelineErrors:
    """Test cases for the pipeline error classes."""

    @pytest.mark.parametrize(
        ("error", "status_code", "code", "expected"),
        [
            (ParameterValidationError("m"), 400, "ERR_VALIDATION", True),
            (BodyValidationError("m"), 400, "INVALID_BODY_VALIDATION", True),
            (UnsupportedMediaTypeError("m"), 415, "UNSUPPORTED_MEDIA_TYPE", True),
            (UnauthorizedError("m"), 401, "UNAUTHORIZED", True),
            (ForbiddenError("m"), 403, "FORBIDDEN", True),
            (ConfigurationError("m"), 500, "ERR_CONFIG", False),
            (NotImplementedOperationError("m"), 501, "NOT_IMPLEMENTED", True),
            (HandlerError("m"), 500, "HANDLER_ERROR", False),
            (ContractViolationError("m"), 500, "CONTRACT_VIOLATION", False),
            (NotFoundError("m"), 404, "NOT_FOUND", True),
            (ContractLoadError("m"), 500, "CONTRACT_LOAD_ERROR", False),
        ],
    )
    def test_status_and_code(
        self, error: ContractumError, status_code: int, code: str, expected: bool
    ) -> None:
        """Test the status, code and severity class of each error."""
        assert error.status_code == status_code
        assert error.error_code == code
        assert error.is_expected is expected

    def test_details_expose_context(self) -> None:
        """Test that context is surfaced as details."""
        error = ParameterValidationError("m", {"location": "query", "errors": []})

        assert error.details == {"location": "query", "errors": []}


@pytest.mark.unit
class TestResponseException:
    """Test cases for ResponseException."""

    def test_carries_response(self) -> None:
        """Test that the response is kept as is."""
        response = PlainTextResponse("teapot", status_code=418)

        exc = ResponseException(response)

        assert exc.response is response
        assert "418" in str(exc)
        assert not isinstance(exc, ContractumError)
