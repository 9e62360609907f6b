"""Error taxonomy of the contract pipeline.

Every failure detected while serving a request is raised as a
``ContractumError`` subclass carrying its HTTP status and error code. The
request pipeline catches them in one place and hands them to the error
responder, so each failure is converted into a response exactly once.

Key components:
- **ErrorCode enum**: Machine-readable codes surfaced in verbose error bodies
- **Severity enum**: Error classification used to pick the log level
- **ContractumError**: Base exception with status, context and cause
- **Specialized exceptions**: One class per pipeline failure
- **ResponseException**: Carries a ready-made response out of user code
"""

from enum import Enum

from starlette.responses import Response

from contractum.core.types import ErrorContext


class ErrorCode(Enum):
    """Error codes returned by the request pipeline."""

    VALIDATION_ERROR = "ERR_VALIDATION"
    """Query or path parameters do not satisfy the contract."""

    BODY_VALIDATION_ERROR = "INVALID_BODY_VALIDATION"
    """The request body does not satisfy the contract."""

    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    """The request body uses a content type the operation cannot parse."""

    UNAUTHORIZED = "UNAUTHORIZED"
    """A security handler declined the request."""

    FORBIDDEN = "FORBIDDEN"
    """A security handler raised while evaluating the request."""

    CONFIG_ERROR = "ERR_CONFIG"
    """A security scheme required by the contract has no registered handler."""

    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    """No business handler is registered for the operation."""

    HANDLER_ERROR = "HANDLER_ERROR"
    """The business handler raised an exception."""

    CONTRACT_VIOLATION = "CONTRACT_VIOLATION"
    """The handler response does not satisfy its declared schema."""

    NOT_FOUND = "NOT_FOUND"
    """No route template matches the request."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred."""

    CONTRACT_LOAD_ERROR = "CONTRACT_LOAD_ERROR"
    """The contract document could not be loaded."""


class Severity(Enum):
    """Severity levels for pipeline errors."""

    LOW = "LOW"
    """Client mistakes that are part of normal operation."""

    MEDIUM = "MEDIUM"
    """Rejections worth noticing but not alerting on."""

    HIGH = "HIGH"
    """Server-side failures of a single request."""

    CRITICAL = "CRITICAL"
    """Deployment or setup problems that break every affected request."""


class ContractumError(Exception):
    """Base exception class for all Contractum exceptions.

    Args:
        error_code: Unique identifier for the error type (string or ErrorCode enum)
        message: Human-readable error message
        status_code: HTTP status the error is reported with
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional details about the error, surfaced in verbose mode
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        status_code: int = 500,
        severity: Severity = Severity.MEDIUM,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.status_code = status_code
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    @property
    def is_expected(self) -> bool:
        """Whether the error is a normal outcome of client input.

        Returns:
            bool: True if the error is expected (LOW or MEDIUM severity)
        """
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def details(self) -> ErrorContext | None:
        """Details surfaced to clients in verbose mode."""
        return self.context or None

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', status_code={self.status_code}, "
            f"severity={self.severity.value}{context_str})"
        )


class ContractLoadError(ContractumError):
    """Raised when the contract document is missing or malformed.

    This is a setup-time failure: route table construction is aborted.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.CONTRACT_LOAD_ERROR,
            message,
            500,
            Severity.CRITICAL,
            context,
            cause,
        )


class ParameterValidationError(ContractumError):
    """Raised when query or path parameters fail their compiled schema."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            ErrorCode.VALIDATION_ERROR, message, 400, Severity.LOW, context
        )


class BodyValidationError(ContractumError):
    """Raised when the parsed request body fails its compiled schema."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            ErrorCode.BODY_VALIDATION_ERROR, message, 400, Severity.LOW, context
        )


class UnsupportedMediaTypeError(ContractumError):
    """Raised when the request content type cannot be parsed for validation."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            ErrorCode.UNSUPPORTED_MEDIA_TYPE, message, 415, Severity.LOW, context
        )


class UnauthorizedError(ContractumError):
    """Raised when a security handler declines the request."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(ErrorCode.UNAUTHORIZED, message, 401, Severity.MEDIUM, context)


class ForbiddenError(ContractumError):
    """Raised when a security handler fails while evaluating the request."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.FORBIDDEN, message, 403, Severity.MEDIUM, context, cause
        )


class ConfigurationError(ContractumError):
    """Raised when the contract requires a security scheme nobody registered."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            ErrorCode.CONFIG_ERROR, message, 500, Severity.CRITICAL, context
        )


class NotImplementedOperationError(ContractumError):
    """Raised when a valid, authorized request has no business handler."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            ErrorCode.NOT_IMPLEMENTED, message, 501, Severity.MEDIUM, context
        )


class HandlerError(ContractumError):
    """Raised when the business handler itself raises."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.HANDLER_ERROR, message, 500, Severity.HIGH, context, cause
        )


class ContractViolationError(ContractumError):
    """Raised when a response body fails its declared response schema."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            ErrorCode.CONTRACT_VIOLATION, message, 500, Severity.HIGH, context
        )


class NotFoundError(ContractumError):
    """Raised when no route template matches the request."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(ErrorCode.NOT_FOUND, message, 404, Severity.LOW, context)


class ResponseException(Exception):  # noqa: N818 - carries a response, not an error
    """Raise from a security or business handler to answer with a response.

    The pipeline returns ``response`` verbatim (CORS headers are still added),
    so the raising handler fully owns the rejection.

    Args:
        response: The response to send to the client.
    """

    def __init__(self, response: Response) -> None:
        self.response = response
        super().__init__(f"Responding with status {response.status_code}")
