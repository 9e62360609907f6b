"""Contractum - contract-driven request pipelines for ASGI services.

Contractum compiles an OpenAPI 3.x document into a live routing table: every
documented operation becomes an endpoint that validates the request against
the contract, enforces the declared security requirements, dispatches to a
registered handler and, in strict mode, checks the response against the
contract as well.

Architecture Overview:
- **Contract Layer**: document loading, schema registry, validator compilation
- **Routing Layer**: route table builder, request pipeline, security chain
- **API Layer**: FastAPI host application, middleware and error responses
- **Core Layer**: configuration, logging, exceptions and tracing

Typical usage:

    router = ContractRouter("openapi.yaml", strict=True)
    router.register("getItem", get_item)
    router.register_security("apiKey", check_api_key)
    table = await router.routes()
"""

from contractum.routing.router import ContractRouter
from contractum.routing.table import RouteTable

__all__ = ["ContractRouter", "RouteTable"]
