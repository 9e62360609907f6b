"""Unit tests for contractum/contract/registry.py."""

import copy
import io
from typing import Any

import pytest
from pytest_mock import MockerFixture
from starlette.datastructures import UploadFile

from contractum.contract.registry import SchemaRegistry, collect_refs, prepare_schema


@pytest.fixture
def schemas(items_contract: dict[str, Any]) -> dict[str, Any]:
    """Provide the named schemas of the items contract."""
    return items_contract["components"]["schemas"]


def make_upload() -> UploadFile:
    """Create an in-memory uploaded file."""
    return UploadFile(io.BytesIO(b"hello"), filename="hello.txt")


@pytest.mark.unit
class TestPrepareSchema:
    """Test cases for schema preparation."""

    def test_local_refs_are_rewritten(self, schemas: dict[str, Any]) -> None:
        """Test that #/components/schemas/ refs become bare names, recursively."""
        prepared = prepare_schema(schemas["Item"])

        assert prepared["properties"]["tags"]["items"] == {"$ref": "Tag"}

    def test_input_is_not_mutated(self, schemas: dict[str, Any]) -> None:
        """Test that preparation works on a copy."""
        original = copy.deepcopy(schemas["Item"])

        prepare_schema(schemas["Item"])

        assert original == schemas["Item"]

    def test_binary_strings_accept_files(self) -> None:
        """Test that binary string nodes are patched, arrays included."""
        prepared = prepare_schema(
            {
                "type": "object",
                "properties": {
                    "file": {"type": "string", "format": "binary"},
                    "files": {
                        "type": "array",
                        "items": {"type": "string", "format": "binary"},
                    },
                    "name": {"type": "string"},
                },
            }
        )

        properties = prepared["properties"]
        assert properties["file"]["type"] == ["string", "file"]
        assert properties["files"]["items"]["type"] == ["string", "file"]
        assert properties["name"]["type"] == "string"

    def test_binary_patch_can_be_disabled(self) -> None:
        """Test that binary=False leaves binary strings untouched."""
        prepared = prepare_schema({"type": "string", "format": "binary"}, binary=False)

        assert prepared["type"] == "string"

    def test_nullable_becomes_null_type(self) -> None:
        """Test that OpenAPI 3.0 nullable is folded into the type list."""
        prepared = prepare_schema({"type": "number", "nullable": True})

        assert prepared["type"] == ["number", "null"]

    def test_collect_refs_skips_internal_pointers(self) -> None:
        """Test that only registry keys and component pointers are collected."""
        refs = collect_refs(
            {
                "allOf": [{"$ref": "Item"}, {"$ref": "#/$defs/local"}],
                "properties": {"p": {"$ref": "#/components/parameters/P"}},
            }
        )

        assert refs == {"Item", "#/components/parameters/P"}


@pytest.mark.unit
class TestSchemaRegistry:
    """Test cases for SchemaRegistry."""

    def test_registers_every_schema(self, schemas: dict[str, Any]) -> None:
        """Test that every named schema is registered."""
        registry = SchemaRegistry(schemas)

        assert len(registry) == 3
        assert "Item" in registry
        assert registry.schema("Tag") == {"type": "string", "minLength": 1}
        assert registry.schema("Missing") is None

    def test_resolve_validates_with_nested_refs(self, schemas: dict[str, Any]) -> None:
        """Test that resolved validators follow references across schemas."""
        validator = SchemaRegistry(schemas).resolve("Item")

        assert validator is not None
        assert validator.validate({"id": 1, "name": "a", "tags": ["x"]}).valid

        result = validator.validate({"id": "1", "tags": [""]})
        assert not result.valid
        keywords = {error["keyword"] for error in result.errors}
        assert {"required", "type", "minLength"} <= keywords

    def test_resolve_is_cached(self, schemas: dict[str, Any]) -> None:
        """Test that resolving the same name twice returns the same validator."""
        registry = SchemaRegistry(schemas)

        assert registry.resolve("Item") is registry.resolve("Item")
        assert registry.resolve("Item") is not registry.resolve("Item", coerce=True)

    def test_resolve_accepts_component_pointer(self, schemas: dict[str, Any]) -> None:
        """Test that full component pointers resolve like bare names."""
        registry = SchemaRegistry(schemas)

        assert registry.resolve("#/components/schemas/Tag") is registry.resolve("Tag")

    def test_resolve_unknown_name_warns(
        self, schemas: dict[str, Any], mocker: MockerFixture
    ) -> None:
        """Test that an unregistered name yields None and a warning."""
        mock_logger = mocker.patch("contractum.contract.registry.logger")

        assert SchemaRegistry(schemas).resolve("Missing") is None
        mock_logger.warning.assert_called_once()

    def test_resolve_transitively_missing_ref(self, mocker: MockerFixture) -> None:
        """Test that a schema referencing an unknown name is not compiled."""
        mock_logger = mocker.patch("contractum.contract.registry.logger")
        registry = SchemaRegistry(
            {
                "Order": {
                    "type": "object",
                    "properties": {"line": {"$ref": "#/components/schemas/Line"}},
                },
                "Line": {"$ref": "#/components/schemas/Product"},
            }
        )

        assert registry.resolve("Order") is None
        assert registry.missing_refs("Order") == frozenset({"Product"})
        mock_logger.warning.assert_called_once()

    def test_recursive_schemas_resolve(self) -> None:
        """Test that self-referencing schemas are supported."""
        registry = SchemaRegistry(
            {
                "Node": {
                    "type": "object",
                    "properties": {
                        "children": {
                            "type": "array",
                            "items": {"$ref": "#/components/schemas/Node"},
                        }
                    },
                }
            }
        )
        validator = registry.resolve("Node")

        assert validator is not None
        assert validator.validate({"children": [{"children": []}]}).valid
        assert not validator.validate({"children": [{"children": 1}]}).valid

    def test_compile_bare_ref_delegates_to_resolve(
        self, schemas: dict[str, Any]
    ) -> None:
        """Test that an inline {$ref} schema reuses the registered validator."""
        registry = SchemaRegistry(schemas)

        compiled = registry.compile({"$ref": "#/components/schemas/Item"})

        assert compiled is registry.resolve("Item")

    def test_compile_inline_schema_with_refs(self, schemas: dict[str, Any]) -> None:
        """Test that inline schemas resolve references through the registry."""
        validator = SchemaRegistry(schemas).compile(
            {"type": "array", "items": {"$ref": "#/components/schemas/Tag"}}
        )

        assert validator is not None
        assert validator.validate(["a", "b"]).valid
        assert not validator.validate(["a", ""]).valid

    def test_compile_inline_schema_with_missing_ref(
        self, schemas: dict[str, Any], mocker: MockerFixture
    ) -> None:
        """Test that inline schemas with unknown references are not compiled."""
        mock_logger = mocker.patch("contractum.contract.registry.logger")

        validator = SchemaRegistry(schemas).compile(
            {"type": "array", "items": {"$ref": "#/components/schemas/Nope"}}
        )

        assert validator is None
        assert mock_logger.warning.called

    def test_binary_compile_accepts_uploaded_files(self) -> None:
        """Test that patched binary fields accept files and strings."""
        schema = {
            "type": "object",
            "properties": {"file": {"type": "string", "format": "binary"}},
        }
        registry = SchemaRegistry({})

        binary = registry.compile(schema, binary=True)
        plain = registry.compile(schema)

        assert binary is not None
        assert plain is not None
        assert binary.validate({"file": make_upload()}).valid
        assert binary.validate({"file": "raw text"}).valid
        assert not binary.validate({"file": 42}).valid
        assert not plain.validate({"file": make_upload()}).valid

    def test_nullable_schema_accepts_null(self, schemas: dict[str, Any]) -> None:
        """Test that nullable properties validate None."""
        validator = SchemaRegistry(schemas).resolve("NewItem")

        assert validator is not None
        assert validator.validate({"name": "a", "price": None}).valid
        assert not validator.validate({"name": "a", "extra": 1}).valid
