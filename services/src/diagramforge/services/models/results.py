"""Result and error payloads returned by the export pipeline."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .options import Dimensions, ExportMetadata

__all__ = ["BatchExportResult", "BatchItemError", "ExportError", "ExportResult"]


class ExportError(BaseModel):
    """User-actionable description of a failed export."""

    model_config = ConfigDict(extra="forbid")

    code: str = Field(min_length=1)
    message: str = Field(min_length=1)
    cause: str | None = None
    details: dict[str, object] = Field(default_factory=dict)
    recoverable: bool = False
    suggestions: list[str] = Field(default_factory=list, max_length=3)


class BatchItemError(ExportError):
    """Failure of one format inside a batch export."""

    format: str
    filename: str


class ExportResult(BaseModel):
    """Outcome of one pipeline run; ownership passes to the caller."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    payload: bytes = Field(default=b"", repr=False)
    data_url: str = Field(default="", repr=False)
    filename: str
    mime_type: str = "application/octet-stream"
    file_size: int = 0
    dimensions: Dimensions = Field(default_factory=lambda: Dimensions(width=0, height=0))
    format: str
    metadata: ExportMetadata = Field(default_factory=ExportMetadata)
    processing_time: float = 0.0
    error: ExportError | None = None


class BatchExportResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    results: list[ExportResult] = Field(default_factory=list)
    archive: bytes | None = Field(default=None, repr=False)
    archive_filename: str | None = None
    total_size: int = 0
    processing_time: float = 0.0
    errors: list[BatchItemError] = Field(default_factory=list)
