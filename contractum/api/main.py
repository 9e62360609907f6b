"""FastAPI host application.

The application serves a ``ContractRouter``: on startup the router builds its
route table and the table is installed as the application's routes. It also
handles:
- Middleware registration in the correct order
- Exception handler registration
- Loading user handlers from ``Settings.handlers_module``
- OpenTelemetry instrumentation

Middleware are executed in reverse order of registration.
"""

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from starlette.routing import BaseRoute

from contractum.api.middleware.error_handler import (
    ErrorResponder,
    register_exception_handlers,
)
from contractum.api.middleware.request_context import RequestContextMiddleware
from contractum.api.middleware.request_logging import RequestLoggingMiddleware
from contractum.api.utils.responses import ORJSONResponse
from contractum.core.config import Settings, get_settings
from contractum.core.exceptions import ConfigurationError
from contractum.core.logging import setup_logging
from contractum.core.observability import instrument_app, setup_tracing
from contractum.routing.router import ContractRouter


def load_handlers(module_name: str, router: ContractRouter) -> None:
    """Import a handlers module and let it register on the router.

    Args:
        module_name: Dotted module path exposing ``register(router)``.
        router: The router to register handlers on.

    Raises:
        ConfigurationError: If the module cannot be imported or has no
            ``register`` callable.
    """
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        msg = f"Cannot import handlers module '{module_name}'"
        raise ConfigurationError(msg, {"module": module_name}) from e

    register = getattr(module, "register", None)
    if not callable(register):
        msg = f"Handlers module '{module_name}' has no register(router) function"
        raise ConfigurationError(msg, {"module": module_name})

    register(router)
    logger.info(
        "Handlers loaded from {}",
        module_name,
        operations=len(router.handlers.operations),
        schemes=len(router.handlers.security),
    )


async def install_routes(app: FastAPI, router: ContractRouter) -> None:
    """Build the router's table and swap it into the application.

    Routes installed by a previous call are replaced as a whole; routes the
    application declares itself (``/health``) are kept in front of them.

    Args:
        app: The host application.
        router: The contract router to serve.
    """
    table = await router.routes()
    previous: list[BaseRoute] = getattr(app.state, "contract_routes", [])
    host_routes = [route for route in app.router.routes if route not in previous]
    contract_routes = table.to_starlette_routes()

    app.router.routes = [*host_routes, *contract_routes]
    app.state.contract_routes = contract_routes
    logger.info("Contract routes installed", routes=len(contract_routes))


def create_app(
    settings: Settings | None = None, router: ContractRouter | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use
            get_settings().
        router: Optional router. If not provided, one is created from the
            settings.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    if router is None:
        router = ContractRouter.from_settings(settings)
    if settings.handlers_module:
        load_handlers(settings.handlers_module, router)

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
        await install_routes(app_instance, router)
        logger.info(
            "Application startup complete - {} v{}",
            app_instance.title,
            app_instance.version,
        )

        yield

        logger.info("Application shutdown complete")

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.router = router
    application.state.error_responder = ErrorResponder(
        router.cors_headers,
        development=router.development,
        formatter=lambda: router.handlers.error_formatter,
    )

    # Register exception handlers BEFORE middleware
    register_exception_handlers(application)

    # 2. Request logging middleware (logs requests/responses)
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)

    # 1. Request context middleware (creates correlation ID)
    application.add_middleware(RequestContextMiddleware)

    @application.get("/health")
    async def health() -> dict[str, object]:
        """Health check endpoint for monitoring and container orchestration.

        Returns:
            dict[str, object]: Status and whether the route table is installed.
        """
        return {
            "status": "healthy",
            "routes_installed": router.route_table is not None,
        }

    # Instrument application for tracing (at the end)
    instrument_app(application, settings)

    return application
