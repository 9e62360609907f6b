"""Security requirement enforcement.

The effective requirement list of an operation is evaluated in declaration
order and every requirement object must pass. Inside an object each scheme
is evaluated in key order; an empty object passes. The first rejection ends
the chain.

Handler results map to outcomes:
- ``True`` (exactly): accepted
- a ``Response``: rejected with that response
- anything else: rejected with 401
- raising ``ResponseException``: rejected with its response
- raising anything else: rejected with 403
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger
from starlette.responses import Response

from contractum.core.error_context import sanitize_error_context
from contractum.core.exceptions import (
    ConfigurationError,
    ForbiddenError,
    ResponseException,
    UnauthorizedError,
)
from contractum.routing.handlers import HandlerRegistry, invoke

if TYPE_CHECKING:
    from collections.abc import Sequence

    from contractum.core.types import SecurityContext, SecurityRequirement
    from contractum.routing.context import RequestContext


@dataclass(frozen=True, slots=True)
class Accepted:
    """The scheme accepted the request."""


@dataclass(frozen=True, slots=True)
class Rejected:
    """The scheme rejected the request with a plain status."""

    status_code: int
    cause: Exception | None = None


@dataclass(frozen=True, slots=True)
class RejectedWithResponse:
    """The scheme rejected the request with its own response."""

    response: Response


type SecurityOutcome = Accepted | Rejected | RejectedWithResponse


class SecurityChain:
    """Evaluates security requirements against registered scheme handlers."""

    def __init__(self, handlers: HandlerRegistry) -> None:
        self.handlers = handlers

    async def evaluate(
        self,
        scheme: str,
        scopes: list[str],
        context: RequestContext,
        security_context: SecurityContext,
    ) -> SecurityOutcome:
        """Run the handler of one scheme.

        Raises:
            ConfigurationError: If no handler is registered for the scheme.
        """
        handler = self.handlers.security.get(scheme)
        if handler is None:
            logger.error(
                "No security handler registered for scheme {}",
                scheme,
                operation_id=context.operation_id,
            )
            msg = f"Security scheme '{scheme}' has no registered handler"
            raise ConfigurationError(msg, {"scheme": scheme})

        try:
            result = await invoke(handler, context, scopes, security_context)
        except ResponseException as e:
            return RejectedWithResponse(e.response)
        except Exception as e:
            logger.warning(
                "Security handler for scheme {} raised",
                scheme,
                **sanitize_error_context(e, {"operation_id": context.operation_id}),
            )
            return Rejected(403, cause=e)

        if result is True:
            return Accepted()
        if isinstance(result, Response):
            return RejectedWithResponse(result)
        return Rejected(401)

    async def enforce(
        self,
        requirements: Sequence[SecurityRequirement],
        context: RequestContext,
        security_context: SecurityContext,
    ) -> None:
        """Require every requirement object to pass.

        Raises:
            ResponseException: If a handler rejected with its own response.
            UnauthorizedError: If a handler rejected the credentials.
            ForbiddenError: If a handler raised.
            ConfigurationError: If a scheme has no registered handler.
        """
        for requirement in requirements:
            for scheme, scopes in requirement.items():
                outcome = await self.evaluate(
                    scheme, list(scopes or []), context, security_context
                )
                match outcome:
                    case Accepted():
                        continue
                    case RejectedWithResponse(response=response):
                        raise ResponseException(response)
                    case Rejected(status_code=403, cause=cause):
                        msg = f"Access denied by security scheme '{scheme}'"
                        raise ForbiddenError(msg, {"scheme": scheme}, cause=cause)
                    case Rejected():
                        msg = f"Authentication failed for security scheme '{scheme}'"
                        raise UnauthorizedError(msg, {"scheme": scheme})
