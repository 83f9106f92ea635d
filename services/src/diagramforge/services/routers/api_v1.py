"""API v1 aggregate router."""

from __future__ import annotations

from fastapi import APIRouter

from .export import router as export_router
from .health import router as health_router

router = APIRouter(prefix="/api/v1")
router.include_router(health_router)
router.include_router(export_router)

__all__ = ["router"]
