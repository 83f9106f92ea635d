"""ASGI middleware: request tracing, error envelopes and body size limits."""

from __future__ import annotations

import logging
import time
from contextvars import ContextVar

from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers, MutableHeaders
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .http import (
    TRACE_ID_HEADER,
    build_error_payload,
    ensure_trace_id,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
    resolve_trace_id,
    service_error_response,
)
from .metrics import record_request
from .service_errors import HTTP_STATUS_PAYLOAD_TOO_LARGE, ServiceError

LOGGER = logging.getLogger(__name__)


class TraceMiddleware:
    """Attach a trace id to every HTTP exchange and render raised errors.

    Errors escaping the routers are converted into the shared
    :class:`ErrorResponse` envelope; every exchange is counted in metrics.
    """

    def __init__(self, app: ASGIApp, *, trace_context: ContextVar[str]) -> None:
        self.app = app
        self._trace_context = trace_context

    @staticmethod
    def _error_response(exc: Exception, trace_id: str, method: str, path: str) -> JSONResponse:
        if isinstance(exc, ServiceError):
            return service_error_response(exc, trace_id)
        if isinstance(exc, HTTPException):
            return http_exception_to_response(exc, trace_id)
        if isinstance(exc, RequestValidationError):
            return request_validation_response(exc, trace_id)
        LOGGER.exception(
            "http.unhandled_error",
            exc_info=exc,
            extra={"extra_payload": {"method": method, "path": path, "trace_id": trace_id}},
        )
        return internal_error_response(trace_id)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "")
        trace_id = resolve_trace_id(Headers(scope=scope).get(TRACE_ID_HEADER))
        token = self._trace_context.set(trace_id)
        scope.setdefault("state", {})["trace_id"] = trace_id
        started = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        async def send_with_trace(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).setdefault(TRACE_ID_HEADER, trace_id)
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_trace)
        except Exception as exc:  # noqa: BLE001 - rendered as an error envelope
            response = self._error_response(exc, trace_id, method, path)
            status_code = response.status_code
            await response(scope, receive, send)
        finally:
            self._trace_context.reset(token)
            record_request(method, status_code)
            LOGGER.debug(
                "http.request",
                extra={
                    "extra_payload": {
                        "method": method,
                        "path": path,
                        "status": status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                        "trace_id": trace_id,
                    }
                },
            )


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``limit`` bytes with a 413 envelope.

    Declared ``content-length`` values are checked up front; streamed bodies
    are counted as they arrive.
    """

    def __init__(self, app: ASGIApp, *, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be greater than zero.")
        self.app = app
        self._limit = limit

    def _too_large(self) -> JSONResponse:
        trace_id = ensure_trace_id()
        payload = build_error_payload(
            code="PAYLOAD_TOO_LARGE",
            message="Request payload exceeds allowed size.",
            details={"limit_bytes": self._limit},
            trace_id=trace_id,
        )
        return JSONResponse(
            status_code=HTTP_STATUS_PAYLOAD_TOO_LARGE,
            content=payload.model_dump(),
            headers={TRACE_ID_HEADER: trace_id},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared and declared.isdigit() and int(declared) > self._limit:
            await self._too_large()(scope, receive, send)
            return

        consumed = 0
        rejected = False

        async def counting_receive() -> Message:
            nonlocal consumed, rejected
            message = await receive()
            if message["type"] == "http.request" and not rejected:
                consumed += len(message.get("body", b""))
                if consumed > self._limit:
                    rejected = True
                    await self._too_large()(scope, receive, send)
                    return {"type": "http.disconnect"}
            return message

        async def guarded_send(message: Message) -> None:
            # Once the 413 went out, anything the app sends is dropped.
            if not rejected:
                await send(message)

        await self.app(scope, counting_receive, guarded_send)


__all__ = ["BodySizeLimitMiddleware", "TraceMiddleware"]
