"""Router package exports."""

from __future__ import annotations

from .api_v1 import router as api_router
from .export import router as export_router
from .health import router as health_router

__all__ = [
    "api_router",
    "export_router",
    "health_router",
]
