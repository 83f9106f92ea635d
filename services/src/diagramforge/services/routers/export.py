"""Diagram export API surface."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import ServiceSettings
from ..constants import DEFAULT_FILENAME
from ..encoders import base64_data_url
from ..export_service import DiagramExportService
from ..http import raise_export_error, raise_validation_error
from ..models.options import BatchExportOptions, Dimensions, ExportMetadata
from ..models.results import BatchExportResult, BatchItemError, ExportResult
from .dependencies import get_export_service, get_settings

router = APIRouter(prefix="/export", tags=["export"])

ZIP_MIME_TYPE = "application/zip"


class ExportRequest(BaseModel):
    """Request body for single-format exports."""

    model_config = ConfigDict(extra="forbid")

    svg: str
    options: dict[str, Any] = Field(default_factory=dict)


class BatchExportRequest(BaseModel):
    """Request body for multi-format exports."""

    model_config = ConfigDict(extra="forbid")

    svg: str
    formats: list[str] = Field(min_length=1)
    base_filename: str = DEFAULT_FILENAME
    options: dict[str, Any] = Field(default_factory=dict)
    zip_results: bool = False


class ExportResponse(BaseModel):
    """Successful export rendered for JSON transport."""

    success: bool
    data_url: str
    filename: str
    mime_type: str
    file_size: int
    dimensions: Dimensions
    format: str
    metadata: ExportMetadata
    processing_time: float

    @classmethod
    def from_result(cls, result: ExportResult) -> "ExportResponse":
        return cls.model_validate(result.model_dump(exclude={"payload", "error"}))


class BatchExportResponse(BaseModel):
    success: bool
    results: list[ExportResponse]
    archive_filename: str | None = None
    archive_data_url: str | None = None
    total_size: int
    processing_time: float
    errors: list[BatchItemError]

    @classmethod
    def from_result(cls, result: BatchExportResult) -> "BatchExportResponse":
        return cls(
            success=result.success,
            results=[ExportResponse.from_result(item) for item in result.results],
            archive_filename=result.archive_filename,
            archive_data_url=(
                base64_data_url(result.archive, ZIP_MIME_TYPE) if result.archive is not None else None
            ),
            total_size=result.total_size,
            processing_time=result.processing_time,
            errors=result.errors,
        )


class FormatDescription(BaseModel):
    format: str
    mime_type: str
    extension: str
    supports_alpha: bool


def _parse(model: type[BaseModel], payload: dict[str, Any], message: str) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise_validation_error(
            message=message,
            details={"errors": exc.errors(include_url=False, include_context=False)},
        )


def content_disposition(filename: str) -> str:
    """Build an attachment header that survives non-ASCII filenames."""

    ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").strip() or DEFAULT_FILENAME
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.get("/formats", response_model=list[FormatDescription])
async def list_formats(
    service: DiagramExportService = Depends(get_export_service),
) -> list[FormatDescription]:
    """Describe the formats the service can produce."""

    return [FormatDescription.model_validate(entry) for entry in service.registry.describe()]


@router.post("", response_model=ExportResponse, status_code=status.HTTP_200_OK)
async def export_diagram(
    payload: dict[str, Any],
    service: DiagramExportService = Depends(get_export_service),
) -> ExportResponse:
    """Export a diagram and return the artifact as a data URL."""

    request_model: ExportRequest = _parse(ExportRequest, payload, "Invalid export request.")
    result = await service.export(request_model.svg, request_model.options)
    if result.error is not None:
        raise_export_error(result.error)
    return ExportResponse.from_result(result)


@router.post("/file", status_code=status.HTTP_200_OK, response_class=Response)
async def export_diagram_file(
    payload: dict[str, Any],
    service: DiagramExportService = Depends(get_export_service),
) -> Response:
    """Export a diagram and stream the raw artifact bytes back."""

    request_model: ExportRequest = _parse(ExportRequest, payload, "Invalid export request.")
    result = await service.export(request_model.svg, request_model.options)
    if result.error is not None:
        raise_export_error(result.error)
    return Response(
        content=result.payload,
        media_type=result.mime_type,
        headers={"Content-Disposition": content_disposition(result.filename)},
    )


@router.post("/batch", response_model=BatchExportResponse, status_code=status.HTTP_200_OK)
async def export_batch(
    payload: dict[str, Any],
    settings: ServiceSettings = Depends(get_settings),
    service: DiagramExportService = Depends(get_export_service),
) -> BatchExportResponse:
    """Export a diagram to several formats; partial failures are reported per item."""

    request_model: BatchExportRequest = _parse(BatchExportRequest, payload, "Invalid batch export request.")
    if len(request_model.formats) > settings.max_batch_formats:
        raise_validation_error(
            message="Too many formats requested in one batch.",
            details={"requested": len(request_model.formats), "limit": settings.max_batch_formats},
        )

    batch_options = _parse(
        BatchExportOptions,
        request_model.model_dump(exclude={"svg"}),
        "Invalid batch export request.",
    )
    result = await service.batch_export(request_model.svg, batch_options)
    return BatchExportResponse.from_result(result)


__all__ = [
    "BatchExportRequest",
    "BatchExportResponse",
    "ExportRequest",
    "ExportResponse",
    "content_disposition",
    "export_batch",
    "export_diagram",
    "export_diagram_file",
    "list_formats",
    "router",
]
