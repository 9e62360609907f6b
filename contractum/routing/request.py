"""Extraction of path, query, cookie and body values from a request."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import unquote

import orjson
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import cookie_parser

from contractum.contract.compiler import media_type_base
from contractum.core.constants import (
    FORM_MEDIA_TYPE,
    JSON_MEDIA_TYPE,
    MULTIPART_MEDIA_TYPE,
)
from contractum.core.exceptions import UnsupportedMediaTypeError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.datastructures import FormData
    from starlette.requests import Request

TEMPLATE_PARAM: Final = re.compile(r"\{([^{}/]+)\}")

# Sentinel for "no body was sent and none is required"
NO_BODY: Final = object()


def match_template(template: str, path: str) -> dict[str, str]:
    """Match a request path against a contract template segment by segment.

    Args:
        template: Contract path template, e.g. ``/items/{id}``.
        path: Request path, e.g. ``/items/42``.

    Returns:
        dict[str, str]: Parameter values, empty when the shapes differ.
    """
    template_segments = template.strip("/").split("/")
    path_segments = path.strip("/").split("/")
    if len(template_segments) != len(path_segments):
        return {}

    params: dict[str, str] = {}
    for expected, actual in zip(template_segments, path_segments, strict=True):
        if match := TEMPLATE_PARAM.fullmatch(expected):
            params[match.group(1)] = unquote(actual)
        elif expected != actual:
            return {}
    return params


def extract_path_params(
    request: Request, template: str, param_names: Mapping[str, str]
) -> dict[str, Any]:
    """Path parameters keyed by their contract names.

    Uses the values matched by the host router; falls back to positional
    matching of the template when the host provided none.
    """
    if request.path_params:
        return {
            param_names.get(name, name): value
            for name, value in request.path_params.items()
        }
    return dict(match_template(template, request.url.path))


def extract_query(request: Request) -> dict[str, Any]:
    """Query string as a flat mapping; the last value of a repeated key wins."""
    return dict(request.query_params)


def parse_cookies(header: str | None) -> dict[str, str]:
    """Cookies from a ``Cookie`` header; segments without a name are skipped."""
    if not header:
        return {}
    cookies = cookie_parser(header)
    cookies.pop("", None)
    return cookies


def collapse_form(form: FormData) -> dict[str, Any]:
    """Field map of a parsed form; repeated names become an ordered list."""
    fields: dict[str, Any] = {}
    for name, value in form.multi_items():
        if name not in fields:
            fields[name] = value
        elif isinstance(fields[name], list):
            fields[name].append(value)
        else:
            fields[name] = [fields[name], value]
    return fields


def is_json_media_type(media_type: str) -> bool:
    """``application/json`` or any ``+json`` structured syntax suffix."""
    return media_type == JSON_MEDIA_TYPE or media_type.endswith("+json")


async def read_body(request: Request, *, required: bool) -> Any:  # noqa: ANN401 - any decoded body
    """Parse the request body according to its content type.

    Args:
        request: The incoming request.
        required: Whether the operation requires a body.

    Returns:
        Any: The decoded body; ``{}`` when it cannot be parsed, or ``NO_BODY``
            when the request is empty and no body is required.

    Raises:
        UnsupportedMediaTypeError: If the content type cannot be parsed.
    """
    raw = await request.body()
    content_type = request.headers.get("content-type")
    media_type = media_type_base(content_type)

    if not raw and not required:
        return NO_BODY

    if is_json_media_type(media_type):
        if not raw:
            return {}
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            return {}

    if media_type in (MULTIPART_MEDIA_TYPE, FORM_MEDIA_TYPE):
        try:
            form = await request.form()
        except (MultiPartException, HTTPException):
            return {}
        return collapse_form(form)

    if not raw and not media_type:
        return {}

    msg = f"Unsupported content type: {content_type or 'none'}"
    raise UnsupportedMediaTypeError(msg, {"content_type": content_type})
