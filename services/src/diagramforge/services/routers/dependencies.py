"""Dependency injection helpers for FastAPI routers."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from ..config import ServiceSettings
from ..export_service import DiagramExportService

__all__ = ["get_export_service", "get_settings"]


def get_settings(request: Request) -> ServiceSettings:
    """Return the service settings configured for the application."""

    return cast(ServiceSettings, request.app.state.settings)


def get_export_service(request: Request) -> DiagramExportService:
    """Return the export service stored on the application state."""

    return cast(DiagramExportService, request.app.state.export_service)
