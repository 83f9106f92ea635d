"""Single-format export pipeline and the public service facade."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import BaseModel

from .batch import BatchExportOrchestrator
from .cancellation import CancellationToken
from .config import ServiceSettings
from .constants import DEFAULT_CREATOR, DEFAULT_FILENAME, DEFAULT_PRODUCER
from .encoders import EncoderRegistry, default_registry, filename_for
from .error_classifier import classify_error
from .metrics import UNSUPPORTED_FORMAT_LABEL, record_export
from .models.options import BatchExportOptions, Dimensions, ExportMetadata, ExportOptions, normalise_format
from .models.results import BatchExportResult, ExportResult
from .normalizer import normalize_document
from .options_resolver import resolve_options
from .preferences import ExportPreferences, load_preferences
from .progress import ProgressChannel, ProgressTracker
from .validation import ensure_valid

LOGGER = logging.getLogger(__name__)

OptionsInput = Mapping[str, Any] | ExportOptions | None


def resolve_metadata(metadata: ExportMetadata, *, now: datetime | None = None) -> ExportMetadata:
    """Fill creator, producer and creation date where the caller left them out."""

    return metadata.model_copy(
        update={
            "creator": metadata.creator or DEFAULT_CREATOR,
            "producer": metadata.producer or DEFAULT_PRODUCER,
            "creation_date": metadata.creation_date or now or datetime.now(timezone.utc),
        }
    )


def _requested(options: OptionsInput, key: str, default: str) -> str:
    """Best-effort lookup of a raw option for results of failed resolutions."""

    if isinstance(options, BaseModel):
        value = getattr(options, key, None)
    elif isinstance(options, Mapping):
        value = options.get(key)
    else:
        value = None
    return value if isinstance(value, str) and value.strip() else default


class DiagramExportService:
    """Convert SVG documents into export artifacts.

    ``export`` and ``batch_export`` never raise for expected failures; the
    outcome is always described by the returned result.
    """

    def __init__(
        self,
        *,
        settings: ServiceSettings | None = None,
        preferences: ExportPreferences | None = None,
        registry: EncoderRegistry | None = None,
    ) -> None:
        self._settings = settings or ServiceSettings()
        self._preferences = preferences or load_preferences(self._settings.preferences_path)
        self._registry = registry or default_registry()

    @property
    def settings(self) -> ServiceSettings:
        return self._settings

    @property
    def preferences(self) -> ExportPreferences:
        return self._preferences

    @property
    def registry(self) -> EncoderRegistry:
        return self._registry

    def resolve(self, options: OptionsInput = None) -> ExportOptions:
        return resolve_options(options, preferences=self._preferences)

    def _metric_format(self, fmt: object) -> str:
        # Requested formats are caller input; only registered ones become labels.
        if isinstance(fmt, str) and self._registry.supports(fmt):
            return normalise_format(fmt)
        return UNSUPPORTED_FORMAT_LABEL

    async def export(
        self,
        svg_text: str,
        options: OptionsInput = None,
        *,
        progress: ProgressChannel | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ExportResult:
        """Run the full pipeline for one format."""

        started = time.perf_counter()
        tracker = ProgressTracker(progress)
        tracker.advance("preparing", "Preparing export...")

        fmt = normalise_format(_requested(options, "format", self._preferences.default_format))
        filename = _requested(options, "filename", DEFAULT_FILENAME)
        metadata = ExportMetadata()

        try:
            resolved = self.resolve(options)
            fmt = resolved.format
            filename = resolved.filename or filename
            metadata = resolved.metadata
            LOGGER.info(
                "export.started",
                extra={"extra_payload": {"format": fmt, "filename": filename}},
            )

            if cancellation is not None:
                cancellation.raise_if_cancelled("validation")
            ensure_valid(svg_text, resolved, registry=self._registry)
            encoder = self._registry.get(fmt)

            if cancellation is not None:
                cancellation.raise_if_cancelled("normalization")
            tracker.advance("rendering", "Rendering diagram...")
            document = normalize_document(svg_text, resolved)

            if cancellation is not None:
                cancellation.raise_if_cancelled("encoding")
            tracker.advance("processing", f"Encoding {fmt.upper()}...")
            metadata = resolve_metadata(resolved.metadata)
            # A timeout abandons the encode: a worker thread already rendering keeps
            # running until it returns, and its output is discarded.
            artifact = await asyncio.wait_for(
                encoder.encode(document, resolved, metadata),
                timeout=self._settings.export_timeout_seconds,
            )

            tracker.advance("finalizing", "Finalizing export...")
            result = ExportResult(
                success=True,
                payload=artifact.payload,
                data_url=artifact.data_url,
                filename=filename_for(filename, fmt),
                mime_type=artifact.mime_type,
                file_size=artifact.size,
                dimensions=Dimensions(width=artifact.width, height=artifact.height),
                format=fmt,
                metadata=metadata,
                processing_time=time.perf_counter() - started,
            )
            tracker.advance("complete", "Export completed successfully")
        except Exception as exc:  # noqa: BLE001 - every failure becomes an ExportError
            error = classify_error(exc)
            tracker.fail(error.message)
            log = LOGGER.warning if error.code != "EXPORT_FAILED" else LOGGER.exception
            log(
                "export.failed",
                extra={
                    "extra_payload": {
                        "format": fmt,
                        "filename": filename,
                        "code": error.code,
                        "recoverable": error.recoverable,
                        "error_message": error.message,
                    }
                },
            )
            record_export(self._metric_format(fmt), error.code)
            return ExportResult(
                success=False,
                filename=filename_for(filename, fmt),
                format=fmt,
                metadata=metadata,
                processing_time=time.perf_counter() - started,
                error=error,
            )

        record_export(self._metric_format(fmt), "success")
        LOGGER.info(
            "export.completed",
            extra={
                "extra_payload": {
                    "format": fmt,
                    "filename": result.filename,
                    "bytes": result.file_size,
                    "processing_time": round(result.processing_time, 4),
                }
            },
        )
        return result

    async def batch_export(
        self,
        svg_text: str,
        batch_options: BatchExportOptions,
        *,
        progress: ProgressChannel | None = None,
        cancellation: CancellationToken | None = None,
    ) -> BatchExportResult:
        """Export ``svg_text`` once per requested format."""

        orchestrator = BatchExportOrchestrator(self)
        return await orchestrator.run(svg_text, batch_options, progress=progress, cancellation=cancellation)


__all__ = ["DiagramExportService", "resolve_metadata"]
