"""Root conftest.py for the Contractum test suite.

This file contains project-wide fixtures and pytest configuration.
"""

import copy
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import yaml

from contractum.core.config import get_settings
from contractum.core.context import CorrelationContext
from contractum.core.error_context import _get_sensitive_fields

ITEM_RESPONSE = {
    "content": {
        "application/json": {"schema": {"$ref": "#/components/schemas/Item"}}
    }
}

ID_PARAMETER = {
    "name": "id",
    "in": "path",
    "required": True,
    "schema": {"type": "integer"},
}

ITEMS_CONTRACT: dict[str, Any] = {
    "openapi": "3.0.3",
    "info": {"title": "Items", "version": "1.0.0"},
    "security": [{"apiKey": []}],
    "paths": {
        "/items": {
            "get": {
                "operationId": "listItems",
                "parameters": [
                    {
                        "name": "limit",
                        "in": "query",
                        "required": True,
                        "schema": {"type": "integer", "minimum": 1},
                    },
                    {
                        "name": "tags",
                        "in": "query",
                        "schema": {"type": "array", "items": {"type": "string"}},
                    },
                    {"name": "active", "in": "query", "schema": {"type": "boolean"}},
                ],
                "responses": {
                    "200": {
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/Item"},
                                }
                            }
                        }
                    }
                },
            },
            "post": {
                "operationId": "createItem",
                "requestBody": {
                    "required": True,
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/NewItem"}
                        }
                    },
                },
                "responses": {"201": ITEM_RESPONSE},
            },
        },
        "/items/{id}": {
            "parameters": [ID_PARAMETER],
            "get": {
                "operationId": "getItem",
                "security": [],
                "responses": {"200": ITEM_RESPONSE, "404": {"description": "Missing"}},
            },
            "delete": {
                "operationId": "deleteItem",
                "responses": {"204": {"description": "Deleted"}},
            },
        },
        "/uploads": {
            "post": {
                "operationId": "uploadFile",
                "security": [],
                "requestBody": {
                    "required": True,
                    "content": {
                        "multipart/form-data": {
                            "schema": {
                                "type": "object",
                                "required": ["file"],
                                "properties": {
                                    "file": {"type": "string", "format": "binary"},
                                    "count": {"type": "integer"},
                                },
                            }
                        }
                    },
                },
                "responses": {"200": {"description": "Stored"}},
            }
        },
        "/forms": {
            "post": {
                "operationId": "submitForm",
                "security": [],
                "requestBody": {
                    "content": {
                        "application/x-www-form-urlencoded": {
                            "schema": {
                                "type": "object",
                                "properties": {
                                    "tag": {
                                        "type": "array",
                                        "items": {"type": "string"},
                                    },
                                    "age": {"type": "integer"},
                                },
                            }
                        }
                    }
                },
                "responses": {"200": {"description": "Accepted"}},
            }
        },
        "/orphans": {"get": {"responses": {"200": {"description": "No id"}}}},
    },
    "components": {
        "schemas": {
            "Item": {
                "type": "object",
                "required": ["id", "name"],
                "properties": {
                    "id": {"type": "integer"},
                    "name": {"type": "string"},
                    "tags": {
                        "type": "array",
                        "items": {"$ref": "#/components/schemas/Tag"},
                    },
                },
            },
            "Tag": {"type": "string", "minLength": 1},
            "NewItem": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "price": {"type": "number", "nullable": True},
                },
                "additionalProperties": False,
            },
        }
    },
}


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture(autouse=True)
def clear_caches() -> Generator[None]:
    """Reset cached settings and the correlation context around each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    CorrelationContext.clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    CorrelationContext.clear()


@pytest.fixture
def items_contract() -> dict[str, Any]:
    """Provide a fresh copy of the items contract document."""
    return copy.deepcopy(ITEMS_CONTRACT)


@pytest.fixture
def contract_file(tmp_path: Path, items_contract: dict[str, Any]) -> Path:
    """Write the items contract to a YAML file.

    Returns:
        Path: Location of the written contract.
    """
    path = tmp_path / "openapi.yaml"
    path.write_text(yaml.safe_dump(items_contract, sort_keys=False), encoding="utf-8")
    return path
