"""Schema registry for the named schemas of a contract.

Every ``components.schemas`` entry is prepared once (local ``$ref`` rewritten
to the bare schema name, ``format: binary`` strings opened up to uploaded
files, ``nullable`` folded into the type list) and registered in a
``referencing`` registry shared by all validators compiled for the contract.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from loguru import logger
from referencing import Registry
from referencing.jsonschema import DRAFT202012

from contractum.contract.validation import FILE_TYPE, SchemaValidator
from contractum.core.types import JsonSchema

LOCAL_REF_PREFIX: Final[str] = "#/components/schemas/"


def _is_binary_string(node: Mapping[str, Any]) -> bool:
    if node.get("format") != "binary":
        return False
    declared = node.get("type")
    return declared == "string" or (isinstance(declared, list) and "string" in declared)


def prepare_schema(node: Any, *, binary: bool = True) -> Any:  # noqa: ANN401 - any schema node
    """Return a rewritten deep copy of a schema tree.

    Args:
        node: Schema (or any node of one).
        binary: Patch ``{type: string, format: binary}`` to also accept files.

    Returns:
        Any: The prepared copy; the input is never mutated.
    """
    if isinstance(node, list):
        return [prepare_schema(item, binary=binary) for item in node]
    if not isinstance(node, dict):
        return node

    prepared = {
        key: prepare_schema(value, binary=binary) for key, value in node.items()
    }

    ref = prepared.get("$ref")
    if isinstance(ref, str) and ref.startswith(LOCAL_REF_PREFIX):
        prepared["$ref"] = ref.removeprefix(LOCAL_REF_PREFIX)

    nullable = prepared.get("nullable") is True
    if nullable and isinstance(prepared.get("type"), str | list):
        declared = prepared["type"]
        types = [declared] if isinstance(declared, str) else list(declared)
        if "null" not in types:
            prepared["type"] = [*types, "null"]

    if binary and _is_binary_string(prepared):
        declared = prepared["type"]
        types = [declared] if isinstance(declared, str) else list(declared)
        if FILE_TYPE not in types:
            prepared["type"] = [*types, FILE_TYPE]

    return prepared


def collect_refs(node: Any) -> set[str]:  # noqa: ANN401 - any schema node
    """Registry keys referenced anywhere inside a prepared schema."""
    refs: set[str] = set()
    if isinstance(node, list):
        for item in node:
            refs |= collect_refs(item)
    elif isinstance(node, dict):
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                # Document-internal pointers ("#/$defs/...") resolve by themselves
                if not value.startswith("#") or value.startswith("#/components/"):
                    refs.add(value)
            else:
                refs |= collect_refs(value)
    return refs


class SchemaRegistry:
    """Named schemas of one contract and the validators compiled from them.

    Args:
        schemas: The ``components.schemas`` mapping of the contract.
    """

    def __init__(self, schemas: Mapping[str, Any]) -> None:
        self._schemas: dict[str, Any] = {
            name: prepare_schema(schema) for name, schema in schemas.items()
        }
        self._registry: Registry = Registry().with_resources(
            (name, DRAFT202012.create_resource(schema))
            for name, schema in self._schemas.items()
        )
        self._validators: dict[tuple[str, bool], SchemaValidator | None] = {}
        self._missing: dict[str, frozenset[str]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def schema(self, name: str) -> JsonSchema | None:
        """Prepared schema registered under ``name``."""
        return self._schemas.get(name)

    def missing_refs(self, name: str) -> frozenset[str]:
        """Names that ``name`` transitively references but that are not registered."""
        if name in self._missing:
            return self._missing[name]
        if name not in self._schemas:
            return frozenset({name})

        missing: set[str] = set()
        seen: set[str] = set()
        pending = [name]
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            if current not in self._schemas:
                missing.add(current)
                continue
            pending.extend(collect_refs(self._schemas[current]))

        self._missing[name] = frozenset(missing)
        return self._missing[name]

    def resolve(self, name: str, *, coerce: bool = False) -> SchemaValidator | None:
        """Validator for a registered schema.

        Args:
            name: Registry key (a ``#/components/schemas/`` prefix is accepted).
            coerce: Compile a coercing validator.

        Returns:
            SchemaValidator | None: Cached validator, or None when the schema
                or one of its references is not registered.
        """
        name = name.removeprefix(LOCAL_REF_PREFIX)
        key = (name, coerce)
        if key in self._validators:
            return self._validators[key]

        validator: SchemaValidator | None = None
        if missing := self.missing_refs(name):
            logger.warning(
                "Unresolved schema reference {}", name, missing=sorted(missing)
            )
        else:
            validator = SchemaValidator(
                {"$ref": name}, self._registry, self.schema, coerce=coerce
            )

        self._validators[key] = validator
        return validator

    def compile(
        self, schema: JsonSchema, *, binary: bool = False, coerce: bool = False
    ) -> SchemaValidator | None:
        """Compile an inline schema against this registry.

        Args:
            schema: Raw schema as written in the contract.
            binary: Patch binary strings to accept uploaded files.
            coerce: Compile a coercing validator.

        Returns:
            SchemaValidator | None: The validator, or None when the schema
                references names that are not registered.
        """
        prepared = prepare_schema(schema, binary=binary)
        if isinstance(prepared, dict) and set(prepared) == {"$ref"}:
            return self.resolve(prepared["$ref"], coerce=coerce)

        missing = {
            name for ref in collect_refs(prepared) for name in self.missing_refs(ref)
        }
        if missing:
            logger.warning(
                "Inline schema has unresolved references", missing=sorted(missing)
            )
            return None

        return SchemaValidator(prepared, self._registry, self.schema, coerce=coerce)
