"""Compiled validators and type coercion.

A ``SchemaValidator`` wraps a Draft 2020-12 ``jsonschema`` validator bound to
the schema registry of its contract. Parameter and form validators also
coerce: query strings, path segments and form fields always arrive as text,
so declared numbers, booleans, nulls and arrays are converted before the
schema is checked. Coercion updates the given mapping in place and the
coerced value is returned in the ``ValidationResult``; validate-and-coerce is
one operation.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import ValidationError as SchemaError
from starlette.datastructures import UploadFile

from contractum.core.types import JsonSchema

if TYPE_CHECKING:
    from referencing import Registry

# Extra JSON-Schema type accepted by patched ``format: binary`` nodes
FILE_TYPE: Final[str] = "file"

MAX_REF_DEPTH: Final[int] = 32

_INTEGER_PATTERN: Final = re.compile(r"[+-]?\d+")
_NUMBER_PATTERN: Final = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

type SchemaLookup = Callable[[str], JsonSchema | None]


def _is_uploaded_file(_checker: object, instance: object) -> bool:
    return isinstance(instance, UploadFile)


ContractValidator = validators.extend(
    Draft202012Validator,
    type_checker=Draft202012Validator.TYPE_CHECKER.redefine(
        FILE_TYPE, _is_uploaded_file
    ),
)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of one validation: the (possibly coerced) value and its errors."""

    value: Any
    errors: tuple[dict[str, Any], ...] = ()

    @property
    def valid(self) -> bool:
        """True when the value satisfies the schema."""
        return not self.errors


def describe_error(error: SchemaError) -> dict[str, Any]:
    """Turn a jsonschema error into a JSON-serializable detail entry.

    Args:
        error: The error reported by the schema engine.

    Returns:
        dict[str, Any]: ``path`` (JSON pointer into the value), ``message``
            and the failing ``keyword``.
    """
    path = "".join(f"/{part}" for part in error.absolute_path)
    return {"path": path, "message": error.message, "keyword": error.validator}


class SchemaValidator:
    """A JSON Schema compiled against a contract's schema registry.

    Args:
        schema: Prepared schema (refs already rewritten to registry keys).
        registry: ``referencing`` registry holding the component schemas.
        lookup: Resolves a registry key to its prepared schema, for coercion.
        coerce: Convert string values to their declared types before checking.
    """

    def __init__(
        self,
        schema: JsonSchema,
        registry: Registry,
        lookup: SchemaLookup,
        *,
        coerce: bool = False,
    ) -> None:
        self.schema = schema
        self.coerce = coerce
        self._lookup = lookup
        self._validator = ContractValidator(
            schema,
            registry=registry,
            format_checker=Draft202012Validator.FORMAT_CHECKER,
        )

    def validate(self, value: Any) -> ValidationResult:  # noqa: ANN401 - any decoded payload
        """Coerce (when enabled) and validate a value.

        Args:
            value: Decoded request/response data. Mappings are coerced in place.

        Returns:
            ValidationResult: The coerced value and structured errors.
        """
        if self.coerce:
            value = coerce_value(value, self.schema, self._lookup)

        errors = sorted(
            self._validator.iter_errors(value),
            key=lambda e: [str(part) for part in e.absolute_path],
        )
        return ValidationResult(value, tuple(describe_error(e) for e in errors))

    def __repr__(self) -> str:
        return f"SchemaValidator(coerce={self.coerce}, schema={self.schema!r})"


_UNCHANGED: Final = object()


def _coerce_integer(text: str) -> object:
    if _INTEGER_PATTERN.fullmatch(text):
        return int(text)
    if _NUMBER_PATTERN.fullmatch(text) and float(text).is_integer():
        return int(float(text))
    return _UNCHANGED


def _coerce_number(text: str) -> object:
    if _INTEGER_PATTERN.fullmatch(text):
        return int(text)
    if _NUMBER_PATTERN.fullmatch(text):
        number = float(text)
        if number not in (float("inf"), float("-inf")):
            return number
    return _UNCHANGED


def _coerce_boolean(text: str) -> object:
    return {"true": True, "false": False}.get(text, _UNCHANGED)


def _coerce_null(text: str) -> object:
    return None if text == "" else _UNCHANGED


_SCALAR_COERCERS: Final[dict[str, Callable[[str], object]]] = {
    "integer": _coerce_integer,
    "number": _coerce_number,
    "boolean": _coerce_boolean,
    "null": _coerce_null,
}


def _dereference(schema: object, lookup: SchemaLookup) -> object:
    for _ in range(MAX_REF_DEPTH):
        if not (isinstance(schema, dict) and isinstance(schema.get("$ref"), str)):
            return schema
        target = lookup(schema["$ref"])
        if target is None:
            return schema
        schema = target
    return schema


def _declared_types(schema: JsonSchema) -> tuple[str, ...]:
    declared = schema.get("type")
    if isinstance(declared, str):
        return (declared,)
    if isinstance(declared, list):
        return tuple(t for t in declared if isinstance(t, str))
    if "properties" in schema:
        return ("object",)
    if "items" in schema:
        return ("array",)
    return ()


def coerce_value(value: Any, schema: object, lookup: SchemaLookup) -> Any:  # noqa: ANN401 - any decoded payload
    """Convert textual values to the types their schema declares.

    Objects are coerced property by property (in place), scalars wrapped into
    a list when an array is declared, and strings converted to integer,
    number, boolean or null. Values that cannot be converted are returned
    unchanged so that validation reports them.

    Args:
        value: The value to coerce.
        schema: The schema describing the value.
        lookup: Resolves ``$ref`` registry keys to schemas.

    Returns:
        Any: The coerced value.
    """
    schema = _dereference(schema, lookup)
    if not isinstance(schema, dict):
        return value

    types = _declared_types(schema)

    if isinstance(value, dict):
        for name, subschema in (schema.get("properties") or {}).items():
            if name in value:
                value[name] = coerce_value(value[name], subschema, lookup)
        return value

    if "array" in types:
        items = value if isinstance(value, list) else [value]
        if (item_schema := schema.get("items")) is not None:
            items[:] = [coerce_value(item, item_schema, lookup) for item in items]
        return items

    if isinstance(value, str) and "string" not in types:
        for declared in types:
            coercer = _SCALAR_COERCERS.get(declared)
            if coercer is None:
                continue
            converted = coercer(value)
            if converted is not _UNCHANGED:
                return converted

    return value
