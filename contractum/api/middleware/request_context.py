"""Correlation ID middleware.

Every request gets a correlation ID, taken from the ``X-Correlation-ID``
header when the caller sends one. The ID is stored in a context variable
(read by the error responder and the tracing spans), bound to every Loguru
record emitted while the request runs, and echoed on the response.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from contractum.api.constants import CORRELATION_ID_HEADER
from contractum.core.context import CorrelationContext, generate_correlation_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware managing the correlation ID of each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request inside its correlation context.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with correlation ID header.
        """
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        CorrelationContext.set_correlation_id(correlation_id)

        try:
            with logger.contextualize(correlation_id=correlation_id):
                response = await call_next(request)
                response.headers[CORRELATION_ID_HEADER] = correlation_id
                return response
        finally:
            CorrelationContext.clear()
