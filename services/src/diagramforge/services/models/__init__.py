"""Pydantic models for export options, progress and results."""

from __future__ import annotations

from .errors import ErrorResponse
from .options import (
    BackgroundSettings,
    BatchExportOptions,
    Dimensions,
    ExportMetadata,
    ExportOptions,
    Margins,
    PdfOptions,
    QualitySettings,
    normalise_format,
)
from .progress import ExportProgress, ProgressStage
from .results import BatchExportResult, BatchItemError, ExportError, ExportResult

__all__ = [
    "BackgroundSettings",
    "BatchExportOptions",
    "BatchExportResult",
    "BatchItemError",
    "Dimensions",
    "ErrorResponse",
    "ExportError",
    "ExportMetadata",
    "ExportOptions",
    "ExportProgress",
    "ExportResult",
    "Margins",
    "PdfOptions",
    "ProgressStage",
    "QualitySettings",
    "normalise_format",
]
