"""Pydantic models for the parts of an OpenAPI document the router consumes.

Only the shape needed for routing, validation and security is modelled;
unknown keys (``info``, ``servers``, ``tags``, descriptions, ...) are
ignored. JSON Schemas stay plain dictionaries because they are handed to the
schema engine as-is.
"""

from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from contractum.core.constants import HTTP_METHODS
from contractum.core.types import JsonSchema, SecurityRequirement

type ParameterLocation = Literal["query", "path", "header", "cookie"]


class ContractModel(BaseModel):
    """Base for contract models: frozen, alias-aware, tolerant of extra keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Parameter(ContractModel):
    """A declared operation parameter."""

    name: str
    location: ParameterLocation = Field(alias="in")
    required: bool = False
    schema_: JsonSchema | None = Field(default=None, alias="schema")


class MediaType(ContractModel):
    """Schema attached to one media type of a body."""

    schema_: JsonSchema | None = Field(default=None, alias="schema")


class RequestBody(ContractModel):
    """Declared request body."""

    required: bool = False
    content: dict[str, MediaType] = Field(default_factory=dict)


class ResponseSpec(ContractModel):
    """Declared response for one status code."""

    content: dict[str, MediaType] | None = None


class Operation(ContractModel):
    """One HTTP-method entry under one path template."""

    operation_id: str | None = Field(default=None, alias="operationId")
    parameters: tuple[Parameter, ...] = ()
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, ResponseSpec | None] = Field(default_factory=dict)
    security: tuple[SecurityRequirement, ...] | None = None

    @field_validator("parameters", mode="before")
    @classmethod
    def drop_referenced_parameters(cls, value: Any) -> Any:  # noqa: ANN401 - raw document data
        """Skip ``$ref`` parameter entries, they are not resolved."""
        if isinstance(value, list):
            return [
                item
                for item in value
                if not (isinstance(item, dict) and "$ref" in item)
            ]
        return value

    @field_validator("responses", mode="before")
    @classmethod
    def normalize_status_keys(cls, value: Any) -> Any:  # noqa: ANN401 - raw document data
        """YAML turns unquoted status codes into integers; key them by string."""
        if isinstance(value, dict):
            return {str(status): spec for status, spec in value.items()}
        return value

    def parameters_in(self, location: ParameterLocation) -> tuple[Parameter, ...]:
        """Parameters declared for one location, in declaration order."""
        return tuple(p for p in self.parameters if p.location == location)


class PathItem(ContractModel):
    """All operations declared for one path template."""

    parameters: tuple[Parameter, ...] = ()
    operations: dict[str, Operation] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def split_operations(cls, value: Any) -> Any:  # noqa: ANN401 - raw document data
        """Collect method keys into ``operations`` and merge path-level parameters.

        Operation parameters override path-level ones with the same name and
        location.
        """
        if not isinstance(value, dict):
            return value

        shared = [
            item
            for item in value.get("parameters") or []
            if isinstance(item, dict) and "$ref" not in item
        ]
        operations: dict[str, Any] = {}
        for method, raw in value.items():
            if method not in HTTP_METHODS or not isinstance(raw, dict):
                continue
            own = [
                item for item in raw.get("parameters") or [] if isinstance(item, dict)
            ]
            own_keys = {(item.get("name"), item.get("in")) for item in own}
            inherited = [
                item
                for item in shared
                if (item.get("name"), item.get("in")) not in own_keys
            ]
            operations[method] = {**raw, "parameters": inherited + own}

        return {"parameters": shared, "operations": operations}


class Components(ContractModel):
    """Reusable components; only schemas are consumed."""

    schemas: dict[str, Any] = Field(default_factory=dict)


class Contract(ContractModel):
    """The parsed API document driving routing, validation and security."""

    paths: dict[str, PathItem] = Field(default_factory=dict)
    components: Components = Field(default_factory=Components)
    security: tuple[SecurityRequirement, ...] = ()

    @field_validator("paths", "components", "security", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any, info: ValidationInfo) -> Any:  # noqa: ANN401 - raw document data
        """Treat explicit nulls (``paths:`` with nothing under it) as empty."""
        if value is None:
            return () if info.field_name == "security" else {}
        return value

    def effective_security(
        self, operation: Operation
    ) -> tuple[SecurityRequirement, ...]:
        """Operation-level security replaces the global default, never merges."""
        if operation.security is not None:
            return operation.security
        return self.security
