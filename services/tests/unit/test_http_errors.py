"""Unit tests for shared HTTP error helpers."""

from __future__ import annotations

import json

import pytest
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError

from diagramforge.services.error_classifier import classify_error
from diagramforge.services.http import (
    TRACE_ID_HEADER,
    http_exception_to_response,
    internal_error_response,
    raise_export_error,
    raise_validation_error,
    request_validation_response,
    resolve_trace_id,
)
from diagramforge.services.service_errors import RasterTaintError, ServiceError


def _response_json(response) -> dict[str, object]:
    return json.loads(response.body.decode("utf-8"))


def test_request_validation_response_envelopes_errors() -> None:
    trace_id = "trace-123"
    exc = RequestValidationError(
        [
            {
                "loc": ("body", "svg"),
                "msg": "field required",
                "type": "missing",
                "ctx": {"error": ValueError("bad")},
            }
        ]
    )

    response = request_validation_response(exc, trace_id)
    payload = _response_json(response)

    assert response.status_code == 400
    assert set(payload.keys()) == {"code", "message", "details", "trace_id"}
    assert payload["code"] == "VALIDATION"
    assert payload["details"]["errors"][0]["ctx"] == {"error": "bad"}
    assert payload["trace_id"] == trace_id
    assert response.headers[TRACE_ID_HEADER] == trace_id


def test_internal_error_response_has_expected_shape() -> None:
    response = internal_error_response("trace-456")
    payload = _response_json(response)

    assert response.status_code == 500
    assert payload == {
        "code": "INTERNAL",
        "message": "Internal server error.",
        "details": {},
        "trace_id": "trace-456",
    }


def test_http_exception_dict_detail_keeps_code() -> None:
    exc = HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": "Nothing here."})

    payload = _response_json(http_exception_to_response(exc, "trace-789"))

    assert payload["code"] == "NOT_FOUND"
    assert payload["message"] == "Nothing here."
    assert payload["details"] == {}


def test_resolve_trace_id_keeps_uuid_and_replaces_garbage() -> None:
    candidate = "6f1f4d1e-8a0c-4b7c-9a55-3c0f6d1d2e3f"

    assert resolve_trace_id(candidate) == candidate
    assert resolve_trace_id("not-a-uuid") != "not-a-uuid"
    assert len(resolve_trace_id(None)) == 36


def test_raise_validation_error_uses_400() -> None:
    with pytest.raises(ServiceError) as excinfo:
        raise_validation_error(message="Invalid export request.", details={"field": "svg"})

    assert excinfo.value.status_code == 400
    assert excinfo.value.code == "VALIDATION"


def test_raise_export_error_carries_guidance() -> None:
    error = classify_error(RasterTaintError("Canvas tainted - cannot export. Try exporting as SVG instead."))

    with pytest.raises(ServiceError) as excinfo:
        raise_export_error(error)

    assert excinfo.value.status_code == 422
    assert excinfo.value.code == "RASTER_TAINTED"
    assert excinfo.value.details["recoverable"] is True
    assert excinfo.value.details["suggestions"][0] == "Try exporting as SVG instead"
