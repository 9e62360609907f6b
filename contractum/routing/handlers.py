"""User-registered callables owned by one router."""

import inspect
from dataclasses import dataclass, field
from typing import Any

from starlette.concurrency import run_in_threadpool

from contractum.core.types import (
    ErrorFormatter,
    NotFoundHandler,
    OperationHandler,
    SecurityHandler,
)


@dataclass(slots=True)
class HandlerRegistry:
    """Handlers keyed by operation id and security scheme name.

    Entries are read on every request, so registrations made after the route
    table was built take effect immediately.
    """

    operations: dict[str, OperationHandler] = field(default_factory=dict)
    security: dict[str, SecurityHandler] = field(default_factory=dict)
    error_formatter: ErrorFormatter | None = None
    not_found: NotFoundHandler | None = None


async def invoke(func: Any, *args: Any) -> Any:  # noqa: ANN401 - user callables
    """Call a sync or async user callable and return its result.

    Coroutine functions are awaited directly; plain callables run in the
    threadpool so blocking handlers do not stall the event loop.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args)

    result = await run_in_threadpool(func, *args)
    if inspect.isawaitable(result):
        result = await result
    return result
