"""Sensitive data sanitization for error logging.

Security handlers and business handlers see raw headers, cookies and bodies.
Whenever the pipeline logs one of their failures it passes the surrounding
context through these helpers first, so credentials never reach the logs.
Original data is left unchanged; only the logged copies are redacted.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from functools import lru_cache
from re import Pattern
from typing import Any, Final

from contractum.core.config import get_settings
from contractum.core.constants import REDACTED

SENSITIVE_HEADERS: Final[frozenset[str]] = frozenset(
    {
        "authorization",
        "cookie",
        "x-api-key",
        "x-auth-token",
        "x-csrf-token",
        "set-cookie",
        "proxy-authorization",
    }
)

DEFAULT_SENSITIVE_PATTERN: Final[Pattern[str]] = re.compile(
    r"(password|passwd|pwd|secret|token|api[_-]?key|apikey|auth|authorization|"
    r"credential|private[_-]?key|access[_-]?key|session|cookie|csrf)",
    re.IGNORECASE,
)

# Maximum depth for nested structure sanitization
MAX_DEPTH: Final[int] = 10


@lru_cache(maxsize=1)
def _get_sensitive_fields() -> tuple[str, ...]:
    return tuple(get_settings().log_config.sensitive_fields)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Args:
        field_name: The field name to check.

    Returns:
        bool: True if the field appears to contain sensitive data.
    """
    if DEFAULT_SENSITIVE_PATTERN.search(field_name):
        return True

    field_lower = field_name.lower()
    return any(field.lower() in field_lower for field in _get_sensitive_fields())


def sanitize_value(value: Any, field_name: str = "", depth: int = 0) -> Any:  # noqa: ANN401 - arbitrary JSON-like data
    """Sanitize a value if it appears to be sensitive.

    Nested mappings and sequences are sanitized recursively up to MAX_DEPTH.

    Args:
        value: The value to potentially sanitize.
        field_name: The field name for context.
        depth: Current recursion depth.

    Returns:
        Any: Sanitized value or original if not sensitive.
    """
    if depth > MAX_DEPTH:
        return REDACTED

    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if isinstance(value, Mapping):
        return {k: sanitize_value(v, str(k), depth + 1) for k, v in value.items()}

    if isinstance(value, list | tuple):
        return [sanitize_value(item, "", depth + 1) for item in value]

    return value


def sanitize_dict(data: Mapping[str, Any]) -> dict[str, Any]:
    """Sanitize a mapping by redacting sensitive fields.

    Args:
        data: Mapping to sanitize.

    Returns:
        dict[str, Any]: New dictionary with sensitive values redacted.
    """
    return {key: sanitize_value(value, key) for key, value in data.items()}


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Sanitize HTTP headers.

    Args:
        headers: Headers mapping.

    Returns:
        dict[str, str]: Sanitized headers.
    """
    return {
        k: REDACTED if k.lower() in SENSITIVE_HEADERS else v for k, v in headers.items()
    }


def sanitize_error_context(
    error: BaseException, context: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Create sanitized error context for logging.

    Args:
        error: The exception to create context for.
        context: Additional context to include (will be sanitized).

    Returns:
        dict[str, Any]: Sanitized error context safe for logging.
    """
    error_context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        error_context.update(sanitize_dict(context))
    return error_context
