"""The per-request pipeline behind every contract operation.

Stages run strictly in order and each may short-circuit:

1. extract path, query and cookie values
2. validate the query string (400 ``ERR_VALIDATION``)
3. validate path parameters (400 ``ERR_VALIDATION``)
4. parse and validate the body (415, 400 ``INVALID_BODY_VALIDATION``)
5. enforce security requirements
6. dispatch to the registered handler (501 when none)
7. in strict mode, check the response against the contract
8. attach CORS headers

Stages raise; ``RequestPipeline.run`` converts every failure once through
the error responder.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import orjson
from loguru import logger
from starlette.responses import Response, StreamingResponse

from contractum.api.utils.responses import ORJSONResponse
from contractum.contract.compiler import media_type_base
from contractum.core.constants import BODYLESS_STATUSES, EVENT_STREAM_MEDIA_TYPE
from contractum.core.error_context import sanitize_error_context
from contractum.core.exceptions import (
    BodyValidationError,
    ContractumError,
    ContractViolationError,
    HandlerError,
    NotImplementedOperationError,
    ParameterValidationError,
    ResponseException,
)
from contractum.core.observability import trace_operation
from contractum.routing.context import RequestContext
from contractum.routing.handlers import HandlerRegistry, invoke
from contractum.routing.request import (
    NO_BODY,
    extract_path_params,
    extract_query,
    is_json_media_type,
    parse_cookies,
    read_body,
)

if TYPE_CHECKING:
    from starlette.requests import Request

    from contractum.api.middleware.error_handler import ErrorResponder
    from contractum.core.types import SecurityContext
    from contractum.routing.builder import CompiledRoute
    from contractum.routing.security import SecurityChain


class RequestPipeline:
    """Runs requests for compiled routes.

    Args:
        handlers: Registered operation handlers, read on every request.
        responder: Converts errors into responses.
        security: Security chain for the route's requirements.
        strict: Validate responses against the contract.
        development: Fail with 500 on response contract violations.
    """

    def __init__(
        self,
        handlers: HandlerRegistry,
        responder: ErrorResponder,
        security: SecurityChain,
        *,
        strict: bool = False,
        development: bool = False,
    ) -> None:
        self.handlers = handlers
        self.responder = responder
        self.security = security
        self.strict = strict
        self.development = development

    async def run(self, route: CompiledRoute, request: Request) -> Response:
        """Process one request for one route.

        Args:
            route: The compiled route matched by the host router.
            request: The incoming request.

        Returns:
            Response: The handler response or the error response, with CORS
                headers attached.
        """
        with (
            trace_operation(
                "contract.request",
                operation_id=route.operation_id,
                **{"http.method": route.method},
            ) as span,
            logger.contextualize(operation_id=route.operation_id),
        ):
            request.state.operation_id = route.operation_id
            try:
                response = await self._process(route, request)
            except ResponseException as e:
                response = e.response
            except ContractumError as e:
                response = await self.responder.from_error(e)

            span.set_attribute("http.status_code", response.status_code)
            return self.responder.with_cors(response)

    async def _process(self, route: CompiledRoute, request: Request) -> Response:
        context = await self.build_context(route, request)
        security_context: SecurityContext = {}
        await self.security.enforce(route.security, context, security_context)

        response = await self.dispatch(route, context, security_context)
        if self.strict:
            self.check_response(route, response)
        return response

    async def build_context(
        self, route: CompiledRoute, request: Request
    ) -> RequestContext:
        """Extract and validate the request into a RequestContext.

        Raises:
            ParameterValidationError: If query or path parameters are invalid.
            UnsupportedMediaTypeError: If the body content type is not parsable.
            BodyValidationError: If the body fails its schema.
        """
        validators = route.validators
        params = extract_path_params(request, route.contract_path, route.param_names)
        query = extract_query(request)
        cookies = parse_cookies(request.headers.get("cookie"))

        if validators.query is not None:
            result = validators.query.validate(query)
            if not result.valid:
                raise ParameterValidationError(
                    "Query parameter validation failed",
                    {"location": "query", "errors": list(result.errors)},
                )

        if validators.path is not None:
            result = validators.path.validate(params)
            if not result.valid:
                raise ParameterValidationError(
                    "Path parameter validation failed",
                    {"location": "path", "errors": list(result.errors)},
                )

        body: Any = None
        if validators.body is not None:
            parsed = await read_body(request, required=validators.body_required)
            if parsed is not NO_BODY:
                result = validators.body.validate(parsed)
                if not result.valid:
                    raise BodyValidationError(
                        "Request body validation failed",
                        {"errors": list(result.errors)},
                    )
                body = result.value

        return RequestContext(
            method=request.method,
            url=str(request.url),
            headers=request.headers,
            params=params,
            query=query,
            cookies=cookies,
            body=body,
            request=request,
            operation_id=route.operation_id,
        )

    async def dispatch(
        self,
        route: CompiledRoute,
        context: RequestContext,
        security_context: SecurityContext,
    ) -> Response:
        """Invoke the operation handler and turn its result into a response.

        Raises:
            NotImplementedOperationError: If no handler is registered.
            HandlerError: If the handler raised an unexpected exception.
        """
        handler = self.handlers.operations.get(route.operation_id)
        if handler is None:
            msg = f"No handler registered for operation '{route.operation_id}'"
            raise NotImplementedOperationError(
                msg, {"operation_id": route.operation_id}
            )

        try:
            result = await invoke(handler, context, security_context)
            return to_response(result)
        except (ResponseException, ContractumError):
            raise
        except Exception as e:
            logger.opt(exception=e).error(
                "Handler for operation {} failed",
                route.operation_id,
                **sanitize_error_context(e, {"path": context.request.url.path}),
            )
            msg = f"Handler for operation '{route.operation_id}' failed"
            raise HandlerError(msg, {"operation_id": route.operation_id}, e) from e

    def check_response(self, route: CompiledRoute, response: Response) -> None:
        """Check a handler response against the documented responses.

        Mismatches are logged. A body failing its schema raises in
        development mode and passes through otherwise.

        Raises:
            ContractViolationError: In development mode, if the body does not
                match the documented schema.
        """
        media_type = media_type_base(response.headers.get("content-type"))
        streaming = isinstance(response, StreamingResponse)
        if streaming or media_type == EVENT_STREAM_MEDIA_TYPE:
            return

        validators = route.validators
        if not validators.has_response_validators:
            return

        status_code = response.status_code
        log = logger.bind(operation_id=route.operation_id, status_code=status_code)
        key = validators.response_key(status_code)
        if key is None:
            log.warning("Response status {} is not documented", status_code)
            return

        body = getattr(response, "body", b"")
        bodiless = key in validators.bodiless_statuses
        if bodiless or str(status_code) in BODYLESS_STATUSES:
            if body:
                log.warning("Response for status {} should not have a body", key)
            return

        validator = validators.responses.get(key)
        if validator is None:
            if body:
                log.warning("Response for status {} has no schema to check", key)
            return
        if not body or not is_json_media_type(media_type):
            return

        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError:
            log.warning("Response body is not valid JSON")
            return

        result = validator.validate(payload)
        if result.valid:
            return

        log.error("Response violates the contract", errors=list(result.errors))
        if self.development:
            raise ContractViolationError(
                "Response does not match the contract",
                {"status_code": status_code, "errors": list(result.errors)},
            )


def to_response(result: Any) -> Response:  # noqa: ANN401 - any handler result
    """Convert a handler result into a response.

    A Response is used as is, ``None`` becomes an empty 204 and anything else
    is rendered as a 200 JSON body.
    """
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status_code=204)
    return ORJSONResponse(result)
