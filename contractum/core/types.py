"""Type aliases for dynamic data structures and handler signatures.

Contract documents, JSON Schemas and request bodies cannot be statically
typed; these aliases give them a name and document the shape that the
routing layer expects from user-registered callables.
"""

from collections.abc import Awaitable, Callable
from typing import Any

# A JSON Schema document (or sub-schema) as parsed from the contract
type JsonSchema = dict[str, Any]

# Context dictionary for error details and debugging information
type ErrorContext = dict[str, Any]

# Per-request scratch mapping populated by security handlers
type SecurityContext = dict[str, Any]

# A security requirement object: scheme name -> required scopes
type SecurityRequirement = dict[str, list[str]]

# User-registered callables. Each may be sync or async.
type OperationHandler = Callable[..., Any | Awaitable[Any]]
type SecurityHandler = Callable[..., Any | Awaitable[Any]]
type ErrorFormatter = Callable[..., Any | Awaitable[Any]]
type NotFoundHandler = Callable[..., Any | Awaitable[Any]]
