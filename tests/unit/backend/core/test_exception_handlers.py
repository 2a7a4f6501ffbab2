"""
Unit Tests for Exception Handlers.
"""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from modules.backend.core.exception_handlers import (
    EXCEPTION_STATUS_MAP,
    _get_request_id,
    _status_for,
    application_error_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from modules.backend.core.exceptions import (
    ApplicationError,
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    InvalidStateTransitionError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)


def _request(request_id: str | None = "req-1", headers: dict | None = None) -> MagicMock:
    request = MagicMock(spec=Request)
    request.state = MagicMock()
    request.state.request_id = request_id
    request.headers = headers or {}
    request.url.path = "/api/v1/missions"
    request.method = "POST"
    return request


def _body(response) -> dict:
    return json.loads(response.body)


class TestStatusMapping:
    """Tests for exception to HTTP status resolution."""

    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (NotFoundError(), 404),
            (ValidationError(), 400),
            (AuthenticationError(), 401),
            (ConflictError(), 409),
            (RateLimitError(), 429),
            (ExternalServiceError(), 502),
            (DatabaseError(), 503),
        ],
    )
    def test_mapped_statuses(self, exc, status):
        """Should map each application error to its HTTP status."""
        assert _status_for(exc) == status

    def test_invalid_state_uses_conflict_status(self):
        """Should resolve InvalidStateTransitionError through its ConflictError base."""
        assert InvalidStateTransitionError not in EXCEPTION_STATUS_MAP
        assert _status_for(InvalidStateTransitionError()) == 409

    def test_unmapped_error_is_500(self):
        """Should fall back to 500 for a bare ApplicationError."""
        assert _status_for(ApplicationError("boom")) == 500


class TestGetRequestId:
    """Tests for request id extraction."""

    def test_prefers_request_state(self):
        """Should use the id bound by the middleware."""
        request = _request("state-123", headers={"x-request-id": "header-456"})
        assert _get_request_id(request) == "state-123"

    def test_falls_back_to_header(self):
        """Should read x-request-id when state has none."""
        request = _request(None, headers={"x-request-id": "header-456"})
        assert _get_request_id(request) == "header-456"


class TestApplicationErrorHandler:
    """Tests for application_error_handler."""

    @pytest.mark.asyncio
    async def test_not_found_envelope(self):
        """Should render the error envelope with code and request id."""
        response = await application_error_handler(_request(), NotFoundError("Mission not found"))

        body = _body(response)
        assert response.status_code == 404
        assert body["success"] is False
        assert body["data"] is None
        assert body["error"]["code"] == "RES_NOT_FOUND"
        assert body["error"]["message"] == "Mission not found"
        assert body["metadata"]["request_id"] == "req-1"

    @pytest.mark.asyncio
    async def test_invalid_state_code(self):
        """Should keep the RES_INVALID_STATE code on a 409."""
        response = await application_error_handler(
            _request(), InvalidStateTransitionError("Mission is already completed"),
        )

        assert response.status_code == 409
        assert _body(response)["error"]["code"] == "RES_INVALID_STATE"

    @pytest.mark.asyncio
    async def test_validation_details_are_rendered(self):
        """Should include ValidationError details."""
        exc = ValidationError("Required fields missing", details={"missing_fields": ["sender"]})

        response = await application_error_handler(_request(), exc)

        assert _body(response)["error"]["details"] == {"missing_fields": ["sender"]}

    @pytest.mark.asyncio
    async def test_external_service_names_upstream(self):
        """Should echo the failing upstream in error.details."""
        response = await application_error_handler(
            _request(), ExternalServiceError("cloverly returned HTTP 500", service="cloverly"),
        )

        body = _body(response)
        assert response.status_code == 502
        assert body["error"]["details"] == {"service": "cloverly"}

    @pytest.mark.asyncio
    async def test_rate_limit_sets_retry_after(self):
        """Should send a Retry-After header."""
        response = await application_error_handler(_request(), RateLimitError(retry_after=42))

        assert response.status_code == 429
        assert response.headers["retry-after"] == "42"
        assert _body(response)["error"]["code"] == "RATE_LIMITED"

    @pytest.mark.asyncio
    async def test_errors_without_details_render_null(self):
        """Should leave details null when the error carries none."""
        response = await application_error_handler(_request(), ConflictError())
        assert _body(response)["error"]["details"] is None


class TestValidationErrorHandler:
    """Tests for request validation failures."""

    @pytest.mark.asyncio
    async def test_lists_field_errors(self):
        """Should flatten pydantic errors into field/message/type entries."""
        exc = RequestValidationError([
            {"loc": ("body", "type"), "msg": "Input should be 'carbon_offset'", "type": "literal_error"},
        ])

        response = await validation_error_handler(_request(), exc)

        body = _body(response)
        assert response.status_code == 422
        assert body["error"]["code"] == "VAL_REQUEST_INVALID"
        assert body["error"]["details"]["validation_errors"] == [
            {"field": "body.type", "message": "Input should be 'carbon_offset'", "type": "literal_error"},
        ]


class TestUnhandledExceptionHandler:
    """Tests for the catch-all handler."""

    @pytest.mark.asyncio
    async def test_hides_internal_details(self):
        """Should return a generic 500 without the exception text."""
        response = await unhandled_exception_handler(_request(), RuntimeError("private key leaked"))

        body = _body(response)
        assert response.status_code == 500
        assert body["error"]["code"] == "SYS_INTERNAL_ERROR"
        assert "private key" not in body["error"]["message"]
