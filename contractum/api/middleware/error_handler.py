"""Error responses for the request pipeline and the host application.

``ErrorResponder`` is the single place where error bodies are produced: the
request pipeline converts every failure through it, and the FastAPI exception
handlers registered here use the same responder for anything that escapes a
route.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.responses import Response

from contractum.api.constants import (
    HTTP_500_INTERNAL_SERVER_ERROR,
    TERSE_CLIENT_ERROR_MESSAGE,
    TERSE_MESSAGES,
    TERSE_SERVER_ERROR_MESSAGE,
)
from contractum.api.schemas.errors import ErrorInfo, ErrorResponse
from contractum.api.utils.responses import ORJSONResponse
from contractum.core.context import CorrelationContext
from contractum.core.error_context import sanitize_error_context
from contractum.core.exceptions import ContractumError, ErrorCode, Severity

if TYPE_CHECKING:
    from contractum.core.types import ErrorFormatter

_LOG_LEVELS = {
    Severity.LOW: "INFO",
    Severity.MEDIUM: "WARNING",
    Severity.HIGH: "ERROR",
    Severity.CRITICAL: "CRITICAL",
}


def terse_message(status_code: int) -> str:
    """Fixed client-facing message for a status when details are hidden."""
    if status_code in TERSE_MESSAGES:
        return TERSE_MESSAGES[status_code]
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        return TERSE_SERVER_ERROR_MESSAGE
    return TERSE_CLIENT_ERROR_MESSAGE


class ErrorResponder:
    """Formats error responses.

    Args:
        cors_headers: Headers attached to every error response.
        development: Verbose bodies (code, message, details) when True;
            fixed messages without code or details otherwise.
        formatter: Returns the currently registered custom formatter, if any.
            Looked up on every call so registrations apply immediately.
    """

    def __init__(
        self,
        cors_headers: Mapping[str, str],
        *,
        development: bool = False,
        formatter: Callable[[], ErrorFormatter | None] | None = None,
    ) -> None:
        self.cors_headers = dict(cors_headers)
        self.development = development
        self._formatter = formatter or (lambda: None)

    def with_cors(self, response: Response) -> Response:
        """Attach CORS headers without overriding headers already set."""
        for name, value in self.cors_headers.items():
            response.headers.setdefault(name, value)
        return response

    async def respond(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Any = None,  # noqa: ANN401 - validator errors or any JSON data
    ) -> Response:
        """Build the response for one error.

        Args:
            status_code: HTTP status of the response.
            code: Machine-readable error code.
            message: Human-readable message.
            details: Structured details, only exposed in verbose mode.

        Returns:
            Response: Error response with CORS headers attached.
        """
        if self.development:
            info = ErrorInfo(
                status=status_code, code=code, message=message, details=details
            )
        else:
            info = ErrorInfo(
                status=status_code, code=code, message=terse_message(status_code)
            )

        if (custom := await self._format_custom(info)) is not None:
            return self.with_cors(custom)

        body = ErrorResponse(
            code=code if self.development else None,
            message=info.message,
            details=info.details,
            correlation_id=CorrelationContext.get_correlation_id(),
        )
        return self.with_cors(ORJSONResponse(body, status_code=status_code))

    async def from_error(self, error: ContractumError) -> Response:
        """Log a pipeline error and convert it into its response."""
        error_context = sanitize_error_context(
            error, {"error_code": error.error_code, "status_code": error.status_code}
        )
        logger.log(
            _LOG_LEVELS[error.severity],
            "Handling {}: {}",
            type(error).__name__,
            error.message,
            **error_context,
        )
        return await self.respond(
            error.status_code, error.error_code, error.message, error.details
        )

    async def _format_custom(self, info: ErrorInfo) -> Response | None:
        formatter = self._formatter()
        if formatter is None:
            return None

        try:
            result = formatter(info)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, Response):
                return result
            if result is None:
                logger.warning(
                    "Custom error formatter returned nothing, using built-in format",
                    status_code=info.status,
                    error_code=info.code,
                )
                return None
            return ORJSONResponse(result, status_code=info.status)
        except Exception as e:
            logger.opt(exception=e).error(
                "Custom error formatter failed, using built-in format",
                status_code=info.status,
                error_code=info.code,
            )
            return None


def get_responder(request: Request) -> ErrorResponder:
    """Responder installed on the application, or a terse default."""
    responder = getattr(request.app.state, "error_responder", None)
    if isinstance(responder, ErrorResponder):
        return responder
    return ErrorResponder({})


async def contractum_error_handler(request: Request, exc: Exception) -> Response:
    """Handle ContractumError exceptions raised outside the pipeline.

    Raises:
        TypeError: If exc is not a ContractumError instance
    """
    if not isinstance(exc, ContractumError):
        raise TypeError(f"Expected ContractumError, got {type(exc).__name__}")

    return await get_responder(request).from_error(exc)


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException with the standard error body.

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    error_code = ErrorCode.INTERNAL_ERROR.value
    if exc.status_code == status.HTTP_400_BAD_REQUEST:
        error_code = ErrorCode.VALIDATION_ERROR.value
    elif exc.status_code == status.HTTP_401_UNAUTHORIZED:
        error_code = ErrorCode.UNAUTHORIZED.value
    elif exc.status_code == status.HTTP_403_FORBIDDEN:
        error_code = ErrorCode.FORBIDDEN.value
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = ErrorCode.NOT_FOUND.value

    logger.warning(
        "HTTP exception",
        **sanitize_error_context(
            exc,
            {
                "status": exc.status_code,
                "method": request.method,
                "path": request.url.path,
            },
        ),
    )
    return await get_responder(request).respond(
        exc.status_code, error_code, str(exc.detail)
    )


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected exceptions with a 500 response."""
    logger.opt(exception=exc).error(
        "Unhandled exception: {}",
        type(exc).__name__,
        **sanitize_error_context(
            exc, {"request_method": request.method, "request_path": request.url.path}
        ),
    )
    return await get_responder(request).respond(
        HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR.value,
        f"Internal server error: {type(exc).__name__}",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(ContractumError, contractum_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
