"""Routing layer: route table builder, request pipeline and security chain."""

from contractum.routing.builder import CompiledRoute, build_route_table
from contractum.routing.context import RequestContext
from contractum.routing.router import ContractRouter
from contractum.routing.security import (
    Accepted,
    Rejected,
    RejectedWithResponse,
    SecurityChain,
)
from contractum.routing.table import RouteTable

__all__ = [
    "Accepted",
    "CompiledRoute",
    "ContractRouter",
    "Rejected",
    "RejectedWithResponse",
    "RequestContext",
    "RouteTable",
    "SecurityChain",
    "build_route_table",
]
