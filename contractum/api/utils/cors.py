"""CORS header computation."""

from collections.abc import Mapping
from typing import Any

from contractum.api.constants import DEFAULT_CORS_HEADERS


def build_cors_headers(options: Mapping[str, Any] | None = None) -> dict[str, str]:
    """Compute the CORS headers attached to every response.

    An explicit ``origin`` replaces the wildcard and enables credentials;
    every other key is a header override merged over the computed defaults.

    Args:
        options: CORS options, e.g. ``{"origin": "https://app.example"}``.

    Returns:
        dict[str, str]: Header name to value.
    """
    headers = dict(DEFAULT_CORS_HEADERS)
    if not options:
        return headers

    overrides = dict(options)
    origin = overrides.pop("origin", None)
    if origin is not None and origin != "*":
        headers["Access-Control-Allow-Origin"] = str(origin)
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Vary"] = "Origin"

    headers.update({str(name): str(value) for name, value in overrides.items()})
    return headers
