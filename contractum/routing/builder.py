"""Route table construction from a loaded contract.

Each documented operation becomes an ``OperationEndpoint`` bound to a frozen
``CompiledRoute``; every path also gets a preflight ``OPTIONS`` entry, and a
catch-all entry answers requests no template matches.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from loguru import logger
from starlette.responses import Response

from contractum.api.middleware.error_handler import ErrorResponder
from contractum.api.utils.responses import ORJSONResponse
from contractum.contract.compiler import OperationValidators, compile_operation
from contractum.contract.registry import SchemaRegistry
from contractum.core.exceptions import ErrorCode, ResponseException
from contractum.routing.handlers import HandlerRegistry, invoke
from contractum.routing.pipeline import RequestPipeline
from contractum.routing.request import TEMPLATE_PARAM
from contractum.routing.security import SecurityChain
from contractum.routing.table import (
    ANY_METHOD,
    CATCH_ALL_PATH,
    Endpoint,
    RouteTable,
)

if TYPE_CHECKING:
    from starlette.requests import Request

    from contractum.contract.models import Contract
    from contractum.core.types import SecurityRequirement

PREFLIGHT_STATUS: Final[int] = 204
NOT_FOUND_STATUS: Final[int] = 404

_INVALID_NAME_CHARS: Final = re.compile(r"\W")


@dataclass(frozen=True, slots=True)
class CompiledRoute:
    """One (path, method) operation, ready to serve requests.

    ``param_names`` maps host path parameter names back to contract names
    where the two differ.
    """

    contract_path: str
    host_path: str
    method: str
    operation_id: str
    security: tuple[SecurityRequirement, ...]
    validators: OperationValidators
    param_names: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )


def host_param_name(name: str) -> str:
    """Starlette-compatible identifier for a contract parameter name."""
    host_name = _INVALID_NAME_CHARS.sub("_", name)
    if not host_name or host_name[0].isdigit():
        host_name = f"_{host_name}"
    return host_name


def to_host_path(template: str) -> tuple[str, dict[str, str]]:
    """Convert a contract template into a host route path.

    Args:
        template: Contract path template, e.g. ``/users/{user-id}``.

    Returns:
        tuple[str, dict[str, str]]: The host path (``/users/{user_id}``) and
            the host -> contract map of renamed parameters.
    """
    renamed: dict[str, str] = {}

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        host_name = host_param_name(name)
        if host_name != name:
            renamed[host_name] = name
        return f"{{{host_name}}}"

    return TEMPLATE_PARAM.sub(replace, template), renamed


def route_shape(template: str) -> str:
    """Template with parameter names erased; equal shapes conflict."""
    return TEMPLATE_PARAM.sub("{}", template)


class OperationEndpoint:
    """Runs the request pipeline for one compiled route."""

    def __init__(self, route: CompiledRoute, pipeline: RequestPipeline) -> None:
        self.route = route
        self.pipeline = pipeline

    async def __call__(self, request: Request) -> Response:
        return await self.pipeline.run(self.route, request)

    def __repr__(self) -> str:
        return (
            f"OperationEndpoint({self.route.method} {self.route.contract_path} "
            f"-> {self.route.operation_id})"
        )


class PreflightEndpoint:
    """Answers ``OPTIONS`` with an empty 204 carrying the CORS headers."""

    def __init__(self, responder: ErrorResponder) -> None:
        self.responder = responder

    async def __call__(self, request: Request) -> Response:  # noqa: ARG002
        return self.responder.with_cors(Response(status_code=PREFLIGHT_STATUS))


class NotFoundEndpoint:
    """Answers requests that match no contract path."""

    def __init__(self, handlers: HandlerRegistry, responder: ErrorResponder) -> None:
        self.handlers = handlers
        self.responder = responder

    async def __call__(self, request: Request) -> Response:
        handler = self.handlers.not_found
        if handler is not None:
            try:
                result = await invoke(handler, request)
            except ResponseException as e:
                return self.responder.with_cors(e.response)
            except Exception as e:
                logger.opt(exception=e).error(
                    "Not-found handler failed", path=request.url.path
                )
                return await self.responder.respond(
                    500, ErrorCode.HANDLER_ERROR.value, "Not-found handler failed"
                )

            if isinstance(result, Response):
                return self.responder.with_cors(result)
            if result is not None:
                return self.responder.with_cors(
                    ORJSONResponse(result, status_code=NOT_FOUND_STATUS)
                )

        return await self.responder.respond(
            NOT_FOUND_STATUS,
            ErrorCode.NOT_FOUND.value,
            f"No route matches {request.method} {request.url.path}",
        )


def build_route_table(
    contract: Contract,
    handlers: HandlerRegistry,
    *,
    cors_headers: Mapping[str, str],
    strict: bool = False,
    development: bool = False,
) -> RouteTable:
    """Build the route table of a contract.

    Args:
        contract: The loaded contract.
        handlers: Handler registry read by the endpoints at request time.
        cors_headers: Headers attached to every response.
        strict: Validate responses against the contract.
        development: Verbose error bodies and hard contract-violation failures.

    Returns:
        RouteTable: A fresh table; building never mutates a previous one.
    """
    registry = SchemaRegistry(contract.components.schemas)
    responder = ErrorResponder(
        cors_headers,
        development=development,
        formatter=lambda: handlers.error_formatter,
    )
    pipeline = RequestPipeline(
        handlers,
        responder,
        SecurityChain(handlers),
        strict=strict,
        development=development,
    )
    preflight = PreflightEndpoint(responder)

    entries: dict[str, dict[str, Endpoint]] = {}
    routes: list[CompiledRoute] = []
    shapes: dict[str, str] = {}

    for template, path_item in contract.paths.items():
        shape = route_shape(template)
        if shape in shapes:
            logger.warning(
                "Path {} conflicts with {}, skipping it",
                template,
                shapes[shape],
            )
            continue
        shapes[shape] = template

        host_path, renamed = to_host_path(template)
        methods: dict[str, Endpoint] = {}
        for method, operation in path_item.operations.items():
            if not operation.operation_id:
                logger.warning(
                    "Operation {} {} has no operationId, skipping it",
                    method.upper(),
                    template,
                )
                continue

            route = CompiledRoute(
                contract_path=template,
                host_path=host_path,
                method=method.upper(),
                operation_id=operation.operation_id,
                security=contract.effective_security(operation),
                validators=compile_operation(operation, registry),
                param_names=MappingProxyType(renamed),
            )
            routes.append(route)
            methods[route.method] = OperationEndpoint(route, pipeline)

        methods.setdefault("OPTIONS", preflight)
        entries[host_path] = methods

    entries[CATCH_ALL_PATH] = {ANY_METHOD: NotFoundEndpoint(handlers, responder)}

    logger.info(
        "Route table built",
        paths=len(entries) - 1,
        operations=len(routes),
        strict=strict,
    )
    return RouteTable(entries, tuple(routes))
