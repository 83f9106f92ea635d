"""DiagramForge export services: SVG to SVG/PNG/JPEG/WebP/PDF."""

from __future__ import annotations

from .cancellation import CancellationToken
from .export_service import DiagramExportService
from .models import BatchExportOptions, BatchExportResult, ExportOptions, ExportProgress, ExportResult
from .options_resolver import resolve_options
from .progress import ProgressChannel

__all__ = [
    "BatchExportOptions",
    "BatchExportResult",
    "CancellationToken",
    "DiagramExportService",
    "ExportOptions",
    "ExportProgress",
    "ExportResult",
    "ProgressChannel",
    "resolve_options",
]
