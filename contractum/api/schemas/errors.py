"""Error payload schemas.

Key models:
- **ErrorInfo**: What a custom error formatter receives
- **ErrorResponse**: Built-in error body sent to clients

In terse mode (outside development) the built-in body carries only a fixed
message per status class and the correlation id; ``code`` and ``details``
are left out of the serialized output entirely.
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorInfo(BaseModel):
    """Error description handed to a registered error formatter."""

    status: int = Field(..., description="HTTP status of the error response")
    code: str | None = Field(
        default=None,
        description="Machine-readable error code (absent in terse mode)",
        examples=["ERR_VALIDATION", "UNAUTHORIZED", "NOT_IMPLEMENTED"],
    )
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(
        default=None,
        description="Validator errors or other structured details",
    )


class ErrorResponse(BaseModel):
    """Built-in error body."""

    code: str | None = Field(
        default=None,
        description="Unique error code identifying the error type",
        examples=["ERR_VALIDATION", "INVALID_BODY_VALIDATION", "FORBIDDEN"],
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Query parameter validation failed", "Bad request"],
    )

    details: Any = Field(
        default=None,
        description="Additional error details (validator errors in verbose mode)",
        examples=[[{"path": "/limit", "message": "'x' is not of type 'integer'"}]],
    )

    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for tracing and debugging",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "ERR_VALIDATION",
                    "message": "Query parameter validation failed",
                    "details": [
                        {
                            "path": "/limit",
                            "message": "'ten' is not of type 'integer'",
                            "keyword": "type",
                        }
                    ],
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440000",
                },
                {
                    "message": "Unauthorized",
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440001",
                },
            ]
        }
    }
