"""The route table handed to the host router."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Final, Protocol

from starlette.routing import Route

from contractum.core.constants import HTTP_METHODS

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from contractum.routing.builder import CompiledRoute

# Host path of the catch-all entry and its method key
CATCH_ALL_PATH: Final[str] = "/{path:path}"
ANY_METHOD: Final[str] = "*"

ALL_METHODS: Final[list[str]] = [method.upper() for method in HTTP_METHODS]


class Endpoint(Protocol):
    """A dispatchable route table entry."""

    async def __call__(self, request: Request) -> Response: ...


class RouteTable(Mapping[str, Mapping[str, Endpoint]]):
    """Host path -> HTTP method -> endpoint.

    Every documented path carries its operations plus ``OPTIONS``; the
    catch-all path ``/{path:path}`` is keyed by ``"*"`` and is always last.

    Args:
        entries: Endpoints per host path, in contract order.
        routes: Compiled routes of the documented operations.
    """

    def __init__(
        self,
        entries: Mapping[str, Mapping[str, Endpoint]],
        routes: tuple[CompiledRoute, ...] = (),
    ) -> None:
        self._entries = {path: dict(methods) for path, methods in entries.items()}
        self.routes = routes

    def __getitem__(self, path: str) -> Mapping[str, Endpoint]:
        return self._entries[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RouteTable(paths={list(self._entries)!r})"

    def operation(self, operation_id: str) -> CompiledRoute | None:
        """Compiled route of an operation, if it is part of the table."""
        for route in self.routes:
            if route.operation_id == operation_id:
                return route
        return None

    def to_starlette_routes(self) -> list[Route]:
        """Build Starlette routes, one per (path, method), catch-all last.

        Starlette dispatches to the first full match, so paths are ordered by
        specificity (literal segments before parameters, left to right) and a
        declared ``HEAD`` comes before the ``GET`` that would also answer it.
        """
        routes: list[Route] = []
        for path in sorted(self._entries, key=path_specificity):
            methods = self._entries[path]
            for method in sorted(methods, key=lambda name: name != "HEAD"):
                routes.append(
                    Route(
                        path,
                        methods[method].__call__,
                        methods=ALL_METHODS if method == ANY_METHOD else [method],
                        include_in_schema=False,
                    )
                )
        return routes


def path_specificity(path: str) -> tuple[int, ...]:
    """Sort key of a host path: 0 per literal segment, 1 per templated one.

    The catch-all sorts after every documented path.
    """
    if path == CATCH_ALL_PATH:
        return (2,)
    return tuple(int("{" in segment) for segment in path.strip("/").split("/"))
