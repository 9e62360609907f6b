"""JSON response class using orjson serialization.

Handler results, error bodies and custom formatter output are all rendered
through ``ORJSONResponse``. Pydantic models returned by handlers are dumped
in JSON mode first, so datetimes and UUIDs inside them render the same way
as at the top level.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _default(value: Any) -> Any:  # noqa: ANN401 - orjson fallback hook
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


class ORJSONResponse(JSONResponse):
    """Response class rendering its content with orjson.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Render the content as JSON using orjson.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json", exclude_none=True)

        return orjson.dumps(content, default=_default, option=orjson.OPT_SORT_KEYS)
