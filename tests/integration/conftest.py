"""Shared fixtures for integration tests.

The host application is built with ``create_app`` and served through
httpx's ASGI transport. The transport does not run the lifespan, so the
fixtures install the contract routes explicitly.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from contractum.api.main import create_app, install_routes
from contractum.core.config import Settings
from contractum.core.logging import _state
from contractum.routing.context import RequestContext
from contractum.routing.router import ContractRouter

type ClientFactory = Callable[
    [ContractRouter], AbstractAsyncContextManager[AsyncClient]
]

API_KEY = "secret-key"


@pytest.fixture(autouse=True)
def logging_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep setup_logging from replacing the test run's Loguru sinks."""
    monkeypatch.setattr(_state, "configured", True)


@pytest.fixture
def settings() -> Settings:
    """Provide development settings that ignore any local .env file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def client_factory(settings: Settings) -> ClientFactory:
    """Build a client serving the given router."""

    @asynccontextmanager
    async def factory(router: ContractRouter) -> AsyncGenerator[AsyncClient]:
        app = create_app(settings, router)
        await install_routes(app, router)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    return factory


@pytest.fixture
def router(items_contract: dict[str, Any]) -> ContractRouter:
    """Provide a development router with the API key scheme registered."""
    router = ContractRouter(items_contract, development=True)
    router.register_security("apiKey", check_api_key)
    return router


@pytest.fixture
def terse_router(items_contract: dict[str, Any]) -> ContractRouter:
    """Provide a production router (terse error bodies)."""
    router = ContractRouter(items_contract)
    router.register_security("apiKey", check_api_key)
    return router


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Provide headers accepted by the API key handler."""
    return {"X-API-Key": API_KEY}


@pytest.fixture
async def client(
    router: ContractRouter, client_factory: ClientFactory
) -> AsyncGenerator[AsyncClient]:
    """Provide a client for the development router."""
    async with client_factory(router) as client:
        yield client


@pytest.fixture
async def terse_client(
    terse_router: ContractRouter, client_factory: ClientFactory
) -> AsyncGenerator[AsyncClient]:
    """Provide a client for the production router."""
    async with client_factory(terse_router) as client:
        yield client


def check_api_key(
    context: RequestContext, _scopes: list[str], security: dict[str, Any]
) -> bool:
    """Accept requests carrying the test API key."""
    if context.headers.get("x-api-key") != API_KEY:
        return False
    security["client"] = "tests"
    return True
