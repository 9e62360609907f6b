"""Public entry point: a router compiled from an API contract."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from loguru import logger
from starlette.concurrency import run_in_threadpool

from contractum.api.utils.cors import build_cors_headers
from contractum.contract.loader import ContractSource, load_contract
from contractum.routing.builder import build_route_table
from contractum.routing.handlers import HandlerRegistry

if TYPE_CHECKING:
    from contractum.core.config import Settings
    from contractum.core.types import (
        ErrorFormatter,
        NotFoundHandler,
        OperationHandler,
        SecurityHandler,
    )
    from contractum.routing.table import RouteTable


def _check_key(key: object, kind: str) -> str:
    if not isinstance(key, str):
        msg = f"{kind} must be a string, got {type(key).__name__}"
        raise TypeError(msg)
    if not key:
        msg = f"{kind} must not be empty"
        raise ValueError(msg)
    return key


def _check_handler(handler: object, kind: str) -> None:
    if handler is not None and not callable(handler):
        msg = f"{kind} must be callable or None, got {type(handler).__name__}"
        raise TypeError(msg)


class ContractRouter:
    """Compiles a contract into a route table and owns its handler registries.

    Handlers are looked up on every request, so they may be registered
    before or after ``routes()`` is called. Several routers can coexist; each
    keeps its own registries.

    Args:
        definition: Path of a YAML/JSON contract, or a parsed document.
        cors: CORS options (``origin`` plus header overrides).
        strict: Validate handler responses against the contract.
        development: Verbose error bodies and 500 on response violations.
    """

    def __init__(
        self,
        definition: ContractSource,
        *,
        cors: Mapping[str, Any] | None = None,
        strict: bool = False,
        development: bool = False,
    ) -> None:
        self.definition = definition
        self.cors_headers = build_cors_headers(cors)
        self.strict = strict
        self.development = development
        self.handlers = HandlerRegistry()
        self.route_table: RouteTable | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> ContractRouter:
        """Create a router from the application settings."""
        return cls(
            settings.contract_path,
            cors=settings.cors_config.as_options(),
            strict=settings.validation_config.strict,
            development=bool(settings.validation_config.development),
        )

    def register(self, operation_id: str, handler: OperationHandler | None) -> None:
        """Register the business handler of an operation; ``None`` removes it.

        Args:
            operation_id: The operationId from the contract.
            handler: ``(RequestContext, SecurityContext) -> result``, sync or
                async.

        Raises:
            TypeError: If the id is not a string or the handler not callable.
            ValueError: If the id is empty.
        """
        operation_id = _check_key(operation_id, "Operation id")
        _check_handler(handler, "Operation handler")
        if handler is None:
            self.handlers.operations.pop(operation_id, None)
        else:
            self.handlers.operations[operation_id] = handler

    def register_security(self, scheme: str, handler: SecurityHandler | None) -> None:
        """Register the handler of a security scheme; ``None`` removes it.

        Args:
            scheme: Security scheme name used in the contract requirements.
            handler: ``(RequestContext, scopes, SecurityContext) -> result``,
                sync or async. Only ``True`` accepts the request.

        Raises:
            TypeError: If the name is not a string or the handler not callable.
            ValueError: If the name is empty.
        """
        scheme = _check_key(scheme, "Security scheme")
        _check_handler(handler, "Security handler")
        if handler is None:
            self.handlers.security.pop(scheme, None)
        else:
            self.handlers.security[scheme] = handler

    def register_error_handler(self, formatter: ErrorFormatter | None) -> None:
        """Register a custom error formatter; ``None`` restores the default."""
        _check_handler(formatter, "Error formatter")
        self.handlers.error_formatter = formatter

    def register_not_found(self, handler: NotFoundHandler | None) -> None:
        """Register the handler for unmatched requests; ``None`` restores 404."""
        _check_handler(handler, "Not-found handler")
        self.handlers.not_found = handler

    async def routes(self) -> RouteTable:
        """Load the contract and build a fresh route table.

        The new table replaces ``route_table`` as a whole; calling this again
        after the contract changed hot swaps every route.

        Returns:
            RouteTable: Host path -> method -> endpoint.

        Raises:
            ContractLoadError: If the contract cannot be loaded.
        """
        contract = await run_in_threadpool(load_contract, self.definition)
        table = build_route_table(
            contract,
            self.handlers,
            cors_headers=self.cors_headers,
            strict=self.strict,
            development=self.development,
        )
        self.route_table = table
        logger.debug(
            "Route table installed on router",
            handlers=len(self.handlers.operations),
            schemes=len(self.handlers.security),
        )
        return table
