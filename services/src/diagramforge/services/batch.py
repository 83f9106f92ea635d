"""Run the export pipeline once per format and bundle the results."""

from __future__ import annotations

import io
import json
import logging
import os
import time
import zipfile
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

from .cancellation import CancellationToken
from .encoders.base import filename_for
from .error_classifier import classify_error
from .models.options import BatchExportOptions
from .models.results import BatchExportResult, BatchItemError, ExportResult
from .progress import ProgressChannel
from .service_errors import ExportCancelledError

if TYPE_CHECKING:
    from .export_service import DiagramExportService

LOGGER = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


def _unique_name(name: str, taken: set[str]) -> str:
    if name not in taken:
        taken.add(name)
        return name
    stem, extension = os.path.splitext(name)
    counter = 2
    while f"{stem}-{counter}{extension}" in taken:
        counter += 1
    unique = f"{stem}-{counter}{extension}"
    taken.add(unique)
    return unique


def build_archive(
    results: Iterable[ExportResult],
    *,
    base_filename: str,
    errors: Iterable[BatchItemError] = (),
) -> bytes:
    """Return an in-memory ZIP holding every payload plus a manifest."""

    taken: set[str] = {MANIFEST_NAME}
    entries: list[dict[str, object]] = []
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for result in results:
            arcname = _unique_name(result.filename, taken)
            archive.writestr(arcname, result.payload)
            entries.append(
                {
                    "filename": arcname,
                    "format": result.format,
                    "mime_type": result.mime_type,
                    "size": result.file_size,
                    "width": result.dimensions.width,
                    "height": result.dimensions.height,
                }
            )

        manifest = {
            "schema_version": "DiagramExportManifest v1",
            "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "base_filename": base_filename,
            "entries": entries,
            "errors": [
                {"format": error.format, "filename": error.filename, "code": error.code, "message": error.message}
                for error in errors
            ],
        }
        archive.writestr(MANIFEST_NAME, json.dumps(manifest, indent=2))
    return buffer.getvalue()


def archive_filename(base_filename: str) -> str:
    return filename_for(base_filename, "zip")


class BatchExportOrchestrator:
    """Sequential, best-effort multi-format export."""

    def __init__(self, service: "DiagramExportService") -> None:
        self._service = service

    @staticmethod
    def _item_error(fmt: str, filename: str, result: ExportResult) -> BatchItemError:
        error = result.error or classify_error(RuntimeError(f"Export to {fmt} failed"))
        return BatchItemError(format=fmt, filename=filename, **error.model_dump())

    @staticmethod
    def _cancelled_error(fmt: str, filename: str) -> BatchItemError:
        error = classify_error(ExportCancelledError("Export was cancelled before it started", {"format": fmt}))
        return BatchItemError(format=fmt, filename=filename, **error.model_dump())

    async def run(
        self,
        svg_text: str,
        batch_options: BatchExportOptions,
        *,
        progress: ProgressChannel | None = None,
        cancellation: CancellationToken | None = None,
    ) -> BatchExportResult:
        started = time.perf_counter()
        results: list[ExportResult] = []
        errors: list[BatchItemError] = []
        formats = list(batch_options.formats)

        for index, fmt in enumerate(formats):
            filename = filename_for(batch_options.base_filename, fmt)
            if cancellation is not None and cancellation.cancelled:
                for remaining in formats[index:]:
                    errors.append(
                        self._cancelled_error(remaining, filename_for(batch_options.base_filename, remaining))
                    )
                break

            item_options = {**batch_options.options, "format": fmt, "filename": filename}
            result = await self._service.export(
                svg_text,
                item_options,
                progress=progress,
                cancellation=cancellation,
            )
            if result.success:
                results.append(result)
            else:
                errors.append(self._item_error(fmt, filename, result))

        archive: bytes | None = None
        archive_name: str | None = None
        if batch_options.zip_results and results:
            archive = build_archive(results, base_filename=batch_options.base_filename, errors=errors)
            archive_name = archive_filename(batch_options.base_filename)

        batch_result = BatchExportResult(
            success=not errors,
            results=results,
            archive=archive,
            archive_filename=archive_name,
            total_size=sum(result.file_size for result in results),
            processing_time=time.perf_counter() - started,
            errors=errors,
        )
        LOGGER.info(
            "export.batch.completed",
            extra={
                "extra_payload": {
                    "formats": formats,
                    "succeeded": len(results),
                    "failed": len(errors),
                    "archive": archive_name,
                }
            },
        )
        return batch_result


__all__ = ["BatchExportOrchestrator", "archive_filename", "build_archive"]
