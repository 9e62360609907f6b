"""Per-operation validator compilation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from loguru import logger

from contractum.core.constants import (
    BODY_MEDIA_TYPES,
    FORM_MEDIA_TYPE,
    JSON_MEDIA_TYPE,
    MULTIPART_MEDIA_TYPE,
)

if TYPE_CHECKING:
    from contractum.contract.models import MediaType, Operation, ParameterLocation
    from contractum.contract.registry import SchemaRegistry
    from contractum.contract.validation import SchemaValidator


def media_type_base(content_type: str | None) -> str:
    """Media type without parameters, lowercased (``"application/json"``)."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True, slots=True)
class OperationValidators:
    """Validators compiled for one operation.

    ``responses`` maps each documented status key to its validator; a ``None``
    validator means the status is documented but its body is not checked.
    ``bodiless_statuses`` lists documented statuses declared without content.
    """

    query: SchemaValidator | None = None
    path: SchemaValidator | None = None
    body: SchemaValidator | None = None
    body_media_type: str | None = None
    body_required: bool = False
    responses: Mapping[str, SchemaValidator | None] = field(
        default_factory=lambda: MappingProxyType({})
    )
    bodiless_statuses: frozenset[str] = frozenset()

    @property
    def has_response_validators(self) -> bool:
        """True when the operation documents any response."""
        return bool(self.responses)

    def response_key(self, status_code: int) -> str | None:
        """Documented status key covering a concrete status.

        Tries the exact code, then the range key (``2XX``), then ``default``.
        """
        exact = str(status_code)
        if exact in self.responses:
            return exact
        for range_key in (f"{status_code // 100}XX", f"{status_code // 100}xx"):
            if range_key in self.responses:
                return range_key
        if "default" in self.responses:
            return "default"
        return None


def _parameter_validator(
    operation: Operation, location: ParameterLocation, registry: SchemaRegistry
) -> SchemaValidator | None:
    parameters = operation.parameters_in(location)
    if not parameters:
        return None

    schema: dict[str, Any] = {
        "type": "object",
        "properties": {p.name: p.schema_ or {} for p in parameters},
    }
    if required := [p.name for p in parameters if p.required]:
        schema["required"] = required

    return registry.compile(schema, coerce=True)


def _schema_validator(
    media: MediaType, registry: SchemaRegistry, *, binary: bool, coerce: bool
) -> SchemaValidator | None:
    if media.schema_ is None:
        return None
    return registry.compile(media.schema_, binary=binary, coerce=coerce)


def _find_media(content: Mapping[str, MediaType], media_type: str) -> MediaType | None:
    for declared, media in content.items():
        if media_type_base(declared) == media_type:
            return media
    return None


def compile_operation(
    operation: Operation, registry: SchemaRegistry
) -> OperationValidators:
    """Compile the validators of one operation.

    Compilation is pure: the operation is not modified and compiling it again
    yields equivalent validators.

    Args:
        operation: The contract operation.
        registry: Schema registry of the owning contract.

    Returns:
        OperationValidators: Query, path, body and response validators.
    """
    body = None
    body_media_type = None
    body_required = False
    if operation.request_body is not None:
        body_required = operation.request_body.required
        for media_type in BODY_MEDIA_TYPES:
            media = _find_media(operation.request_body.content, media_type)
            if media is None:
                continue
            body_media_type = media_type
            body = _schema_validator(
                media,
                registry,
                binary=media_type == MULTIPART_MEDIA_TYPE,
                coerce=media_type in (MULTIPART_MEDIA_TYPE, FORM_MEDIA_TYPE),
            )
            break

    responses: dict[str, SchemaValidator | None] = {}
    bodiless: set[str] = set()
    for status, spec in operation.responses.items():
        if spec is None or not spec.content:
            responses[status] = None
            bodiless.add(status)
            continue
        media = _find_media(spec.content, JSON_MEDIA_TYPE)
        responses[status] = (
            _schema_validator(media, registry, binary=False, coerce=False)
            if media is not None
            else None
        )

    validators = OperationValidators(
        query=_parameter_validator(operation, "query", registry),
        path=_parameter_validator(operation, "path", registry),
        body=body,
        body_media_type=body_media_type,
        body_required=body_required,
        responses=MappingProxyType(responses),
        bodiless_statuses=frozenset(bodiless),
    )
    logger.trace(
        "Compiled validators",
        operation_id=operation.operation_id,
        body_media_type=body_media_type,
        responses=sorted(responses),
    )
    return validators
