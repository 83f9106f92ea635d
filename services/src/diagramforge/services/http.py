"""Error envelopes and trace identifiers for the HTTP surface."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from http import HTTPStatus
from typing import Any, Final, NoReturn
from uuid import UUID, uuid4

from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .models.errors import ErrorResponse
from .models.results import ExportError
from .service_errors import (
    HTTP_STATUS_PAYLOAD_TOO_LARGE,
    HTTP_STATUS_UNPROCESSABLE,
    ServiceError,
    get_error_definition,
)

LOGGER = logging.getLogger(__name__)

TRACE_ID_HEADER: Final[str] = "x-trace-id"
_TRACE_ID_CONTEXT: ContextVar[str] = ContextVar("diagramforge_trace_id", default="")

# Status codes documented on every route in the OpenAPI schema.
DOCUMENTED_ERROR_STATUSES: Final[tuple[int, ...]] = (
    status.HTTP_400_BAD_REQUEST,
    status.HTTP_409_CONFLICT,
    HTTP_STATUS_PAYLOAD_TOO_LARGE,
    HTTP_STATUS_UNPROCESSABLE,
    status.HTTP_500_INTERNAL_SERVER_ERROR,
    status.HTTP_503_SERVICE_UNAVAILABLE,
    status.HTTP_504_GATEWAY_TIMEOUT,
)


def default_error_responses() -> dict[int | str, dict[str, Any]]:
    return {code: {"model": ErrorResponse} for code in DOCUMENTED_ERROR_STATUSES}


def resolve_trace_id(candidate: str | None) -> str:
    """Keep a caller supplied trace id when it is a UUID, otherwise mint one."""

    if candidate:
        try:
            UUID(candidate)
        except ValueError:
            LOGGER.debug("Ignoring invalid trace identifier: %s", candidate)
        else:
            return candidate
    return str(uuid4())


def ensure_trace_id() -> str:
    trace_id = _TRACE_ID_CONTEXT.get()
    if not trace_id:
        trace_id = str(uuid4())
        _TRACE_ID_CONTEXT.set(trace_id)
    return trace_id


def get_trace_context() -> ContextVar[str]:
    return _TRACE_ID_CONTEXT


def build_error_payload(*, code: str, message: str, details: dict[str, Any], trace_id: str) -> ErrorResponse:
    return ErrorResponse(code=code, message=message, details=details, trace_id=trace_id)


def _envelope(status_code: int, payload: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    merged = dict(headers or {})
    merged.setdefault(TRACE_ID_HEADER, payload.trace_id)
    return JSONResponse(status_code=status_code, content=payload.model_dump(), headers=merged)


def _status_code_name(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).name
    except ValueError:
        return "INTERNAL"


def http_exception_to_response(exc: HTTPException, trace_id: str) -> JSONResponse:
    """Render an ``HTTPException``; dict details may carry their own code.

    Routing errors such as 404 arrive with a plain string detail and are
    coded after their status (``NOT_FOUND``, ``METHOD_NOT_ALLOWED``).
    """

    detail = exc.detail
    default_code = _status_code_name(exc.status_code)
    if isinstance(detail, dict):
        payload = ErrorResponse(
            code=str(detail.get("code", default_code)),
            message=str(detail.get("message", "Internal server error.")),
            details=dict(detail.get("details") or {}),
            trace_id=trace_id,
        )
    else:
        payload = build_error_payload(
            code=default_code,
            message=str(detail) or "Internal server error.",
            details={},
            trace_id=trace_id,
        )
    return _envelope(exc.status_code, payload, dict(exc.headers or {}))


def service_error_response(exc: ServiceError, trace_id: str) -> JSONResponse:
    payload = build_error_payload(code=exc.code, message=exc.message, details=exc.details, trace_id=trace_id)
    return _envelope(exc.status_code, payload)


def request_validation_response(exc: RequestValidationError, trace_id: str) -> JSONResponse:
    """Render FastAPI request validation failures as a 400 envelope."""

    payload = build_error_payload(
        code="VALIDATION",
        message="Request validation failed.",
        details={"errors": _sanitize_details(list(exc.errors()))},
        trace_id=trace_id,
    )
    return _envelope(status.HTTP_400_BAD_REQUEST, payload)


def internal_error_response(trace_id: str) -> JSONResponse:
    payload = build_error_payload(code="INTERNAL", message="Internal server error.", details={}, trace_id=trace_id)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, payload)


def _sanitize_details(details: Any) -> Any:
    """Make exception instances nested inside ``details`` JSON friendly."""

    if isinstance(details, BaseException):
        return str(details)
    if isinstance(details, dict):
        return {key: _sanitize_details(value) for key, value in details.items()}
    if isinstance(details, (list, tuple)):
        return [_sanitize_details(item) for item in details]
    return details


def raise_service_error(
    *,
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
    status_code: int | None = None,
) -> NoReturn:
    """Raise a :class:`ServiceError`; status and message default from the code's definition."""

    definition = get_error_definition(code)
    resolved_status = status_code or definition.status_code
    LOGGER.info(
        "http.service_error",
        extra={"extra_payload": {"code": code, "status_code": resolved_status}},
    )
    raise ServiceError(
        code=code,
        status_code=resolved_status,
        message=message or definition.message,
        details=_sanitize_details(details or {}),
    )


def raise_validation_error(*, message: str, details: dict[str, Any]) -> NoReturn:
    raise_service_error(
        code="VALIDATION",
        message=message,
        details=details,
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def raise_export_error(error: ExportError) -> NoReturn:
    """Raise the HTTP rendition of a failed export, keeping its guidance."""

    details = {
        **error.details,
        "recoverable": error.recoverable,
        "suggestions": list(error.suggestions),
        "cause": error.cause,
    }
    raise_service_error(code=error.code, message=error.message, details=details)


__all__: list[str] = [
    "DOCUMENTED_ERROR_STATUSES",
    "TRACE_ID_HEADER",
    "build_error_payload",
    "default_error_responses",
    "ensure_trace_id",
    "get_trace_context",
    "http_exception_to_response",
    "internal_error_response",
    "raise_export_error",
    "raise_service_error",
    "raise_validation_error",
    "request_validation_response",
    "resolve_trace_id",
    "service_error_response",
]
