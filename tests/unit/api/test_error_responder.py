"""Unit tests for contractum/api/middleware/error_handler.py."""

from typing import Any

import orjson
import pytest
from pytest_mock import MockerFixture
from starlette.responses import PlainTextResponse, Response

from contractum.api.middleware.error_handler import ErrorResponder, terse_message
from contractum.api.schemas.errors import ErrorInfo
from contractum.core.context import CorrelationContext
from contractum.core.exceptions import (
    BodyValidationError,
    ContractumError,
    HandlerError,
    ParameterValidationError,
)

CORS = {"Access-Control-Allow-Origin": "*"}


def body_of(response: Response) -> Any:  # noqa: ANN401 - any JSON body
    """Decode a rendered JSON response body."""
    return orjson.loads(response.body)


@pytest.mark.unit
class TestTerseMessage:
    """Test cases for terse_message."""

    @pytest.mark.parametrize(
        ("status_code", "expected"),
        [
            (400, "Bad request"),
            (401, "Unauthorized"),
            (403, "Forbidden"),
            (404, "Not found"),
            (415, "Bad request"),
            (500, "Internal server error"),
            (501, "Internal server error"),
        ],
    )
    def test_messages(self, status_code: int, expected: str) -> None:
        """Test the fixed message per status."""
        assert terse_message(status_code) == expected


@pytest.mark.unit
class TestErrorResponder:
    """Test cases for ErrorResponder."""

    async def test_verbose_body(self) -> None:
        """Test that development mode exposes code, message and details."""
        CorrelationContext.set_correlation_id("corr-1")
        responder = ErrorResponder(CORS, development=True)

        response = await responder.respond(
            400, "ERR_VALIDATION", "Query parameter validation failed", [{"x": 1}]
        )

        assert response.status_code == 400
        assert body_of(response) == {
            "code": "ERR_VALIDATION",
            "message": "Query parameter validation failed",
            "details": [{"x": 1}],
            "correlation_id": "corr-1",
        }
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_terse_body(self) -> None:
        """Test that production mode hides code and details."""
        responder = ErrorResponder(CORS)

        response = await responder.respond(
            400, "ERR_VALIDATION", "Query parameter validation failed", [{"x": 1}]
        )

        assert body_of(response) == {"message": "Bad request"}
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_custom_formatter_dict(self) -> None:
        """Test that a non-response result is rendered with the error status."""
        received: list[ErrorInfo] = []

        def formatter(info: ErrorInfo) -> dict[str, Any]:
            received.append(info)
            return {"error": info.code, "msg": info.message}

        responder = ErrorResponder(CORS, formatter=lambda: formatter)

        response = await responder.respond(401, "UNAUTHORIZED", "Authentication failed")

        assert response.status_code == 401
        assert body_of(response) == {"error": "UNAUTHORIZED", "msg": "Unauthorized"}
        assert received[0].details is None
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_custom_formatter_receives_details_in_development(self) -> None:
        """Test the ErrorInfo handed to the formatter in verbose mode."""
        received: list[ErrorInfo] = []

        async def formatter(info: ErrorInfo) -> Response:
            received.append(info)
            return PlainTextResponse("custom", status_code=499)

        responder = ErrorResponder(CORS, development=True, formatter=lambda: formatter)

        response = await responder.respond(400, "ERR_VALIDATION", "Invalid", ["e"])

        assert response.status_code == 499
        assert response.body == b"custom"
        assert received == [
            ErrorInfo(
                status=400, code="ERR_VALIDATION", message="Invalid", details=["e"]
            )
        ]
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_failing_formatter_falls_back(self, mocker: MockerFixture) -> None:
        """Test that a raising formatter is logged and the built-in body used."""
        mock_logger = mocker.patch("contractum.api.middleware.error_handler.logger")

        def formatter(_info: ErrorInfo) -> None:
            raise RuntimeError("formatter bug")

        responder = ErrorResponder(CORS, formatter=lambda: formatter)

        response = await responder.respond(403, "FORBIDDEN", "Access denied")

        assert response.status_code == 403
        assert body_of(response) == {"message": "Forbidden"}
        mock_logger.opt.return_value.error.assert_called_once()

    async def test_formatter_returning_none_falls_back(
        self, mocker: MockerFixture
    ) -> None:
        """Test that a formatter returning None gets the built-in body."""
        mock_logger = mocker.patch("contractum.api.middleware.error_handler.logger")
        responder = ErrorResponder(CORS, formatter=lambda: lambda _info: None)

        response = await responder.respond(404, "NOT_FOUND", "Missing")

        assert response.status_code == 404
        assert body_of(response) == {"message": "Not found"}
        mock_logger.warning.assert_called_once()

    async def test_formatter_is_looked_up_per_call(self) -> None:
        """Test that registering a formatter later takes effect."""
        registered: dict[str, Any] = {}
        responder = ErrorResponder(CORS, formatter=lambda: registered.get("f"))

        before = await responder.respond(404, "NOT_FOUND", "Missing")
        registered["f"] = lambda info: {"status": info.status}
        after = await responder.respond(404, "NOT_FOUND", "Missing")

        assert body_of(before) == {"message": "Not found"}
        assert body_of(after) == {"status": 404}

    def test_with_cors_keeps_existing_headers(self) -> None:
        """Test that headers set by the handler are not overridden."""
        responder = ErrorResponder(
            {"Access-Control-Allow-Origin": "*", "Vary": "Origin"}
        )
        response = PlainTextResponse(
            "x", headers={"Access-Control-Allow-Origin": "https://mine.test"}
        )

        responder.with_cors(response)

        assert response.headers["access-control-allow-origin"] == "https://mine.test"
        assert response.headers["vary"] == "Origin"

    @pytest.mark.parametrize(
        ("error", "status_code", "code"),
        [
            (
                ParameterValidationError("Bad query", {"errors": []}),
                400,
                "ERR_VALIDATION",
            ),
            (BodyValidationError("Bad body"), 400, "INVALID_BODY_VALIDATION"),
            (HandlerError("Boom"), 500, "HANDLER_ERROR"),
        ],
    )
    async def test_from_error(
        self,
        error: ContractumError,
        status_code: int,
        code: str,
        mocker: MockerFixture,
    ) -> None:
        """Test that pipeline errors map to their status and code, and are logged."""
        mock_logger = mocker.patch("contractum.api.middleware.error_handler.logger")
        responder = ErrorResponder(CORS, development=True)

        response = await responder.from_error(error)

        assert response.status_code == status_code
        assert body_of(response)["code"] == code
        mock_logger.log.assert_called_once()
