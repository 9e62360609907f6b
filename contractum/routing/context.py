"""Per-request values handed to security and business handlers."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from starlette.datastructures import FormData
from starlette.requests import Request


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Extracted and validated parts of one request.

    ``params``, ``query`` and ``body`` hold the coerced values that passed
    validation. ``json()`` and ``form()`` re-read the raw request body.
    """

    method: str
    url: str
    headers: Mapping[str, str]
    params: dict[str, Any]
    query: dict[str, Any]
    cookies: dict[str, str]
    body: Any
    request: Request
    operation_id: str

    async def json(self) -> Any:  # noqa: ANN401 - any decoded JSON
        """Decode the raw request body as JSON."""
        return await self.request.json()

    async def form(self) -> FormData:
        """Parse the raw request body as form data."""
        return await self.request.form()
