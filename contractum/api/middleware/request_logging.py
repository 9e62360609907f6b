"""Access log for the host application.

One line per request once the response is known, carrying the contract
operation that served it (absent for host routes and unmatched paths).
Failures are logged and re-raised. Paths in ``LogConfig.excluded_paths``
are passed through silently.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from contractum.core.config import LogConfig
from contractum.core.constants import MILLISECONDS_PER_SECOND


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * MILLISECONDS_PER_SECOND, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status, duration and operation of each request.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.excluded_paths = frozenset(log_config.excluded_paths)
        self.slow_threshold_ms = log_config.slow_request_threshold_ms

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Time the request and emit the access log entry.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The response from the application.
        """
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        started = time.perf_counter()
        with logger.contextualize(method=request.method, path=request.url.path):
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "{} {} failed",
                    request.method,
                    request.url.path,
                    duration_ms=_elapsed_ms(started),
                    error_type=type(exc).__name__,
                )
                raise

            duration_ms = _elapsed_ms(started)
            log = logger.bind(
                status_code=response.status_code,
                duration_ms=duration_ms,
                operation_id=getattr(request.state, "operation_id", None),
            )
            log.info(
                "{} {} -> {}", request.method, request.url.path, response.status_code
            )

            if duration_ms > self.slow_threshold_ms:
                log.warning("Slow request ({} ms over)", self.slow_threshold_ms)

            return response
