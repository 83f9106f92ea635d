"""FastAPI application factory for the DiagramForge export services."""

from __future__ import annotations

import logging
from typing import Final

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from .config import ServiceSettings
from .export_service import DiagramExportService
from .http import (
    default_error_responses,
    ensure_trace_id,
    get_trace_context,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
)
from .middleware import BodySizeLimitMiddleware, TraceMiddleware
from .preferences import load_preferences
from .routers import api_router

LOGGER = logging.getLogger(__name__)

SERVICE_VERSION: Final[str] = "1.0.0"


def create_app(settings: ServiceSettings | None = None) -> FastAPI:
    """Construct the FastAPI application."""

    service_settings = settings or ServiceSettings.from_environment()
    preferences = load_preferences(service_settings.preferences_path)

    application = FastAPI(
        title="DiagramForge Export Services",
        version=SERVICE_VERSION,
        responses=default_error_responses(),
    )
    application.state.settings = service_settings
    application.state.service_version = SERVICE_VERSION
    application.state.export_service = DiagramExportService(
        settings=service_settings,
        preferences=preferences,
    )

    async def http_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, HTTPException):
            return http_exception_to_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def validation_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, RequestValidationError):
            return request_validation_response(exc, trace_id)
        return internal_error_response(trace_id)

    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)

    application.add_middleware(
        BodySizeLimitMiddleware,
        limit=service_settings.max_request_body_bytes,
    )
    application.add_middleware(
        TraceMiddleware,
        trace_context=get_trace_context(),
    )

    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def service_index(request: Request) -> dict[str, str]:
        """Return a lightweight service manifest for manual checks."""

        version = getattr(request.app.state, "service_version", SERVICE_VERSION)
        return {
            "service": "diagramforge-export",
            "version": version,
            "api_base": "/api/v1",
        }

    @application.get("/favicon.ico", include_in_schema=False)
    async def favicon_placeholder() -> Response:
        """Return an empty favicon response to avoid noisy 404s."""

        return Response(status_code=status.HTTP_204_NO_CONTENT)

    LOGGER.info(
        "app.created",
        extra={
            "extra_payload": {
                "version": SERVICE_VERSION,
                "formats": application.state.export_service.registry.formats(),
            }
        },
    )
    return application


__all__ = ["SERVICE_VERSION", "create_app"]
