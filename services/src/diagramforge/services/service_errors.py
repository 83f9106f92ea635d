"""Central service error definitions and helper exception types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from fastapi import status

# Prefer the newer constant names when available to avoid deprecation warnings.
HTTP_STATUS_UNPROCESSABLE = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)
HTTP_STATUS_PAYLOAD_TOO_LARGE = getattr(status, "HTTP_413_CONTENT_TOO_LARGE", 413)


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int
    recoverable: bool = False
    suggestions: tuple[str, ...] = field(default_factory=tuple)


ERROR_DEFINITIONS: Dict[str, ErrorDefinition] = {
    "VALIDATION_FAILED": ErrorDefinition(
        "VALIDATION_FAILED",
        "Export input failed validation.",
        status.HTTP_400_BAD_REQUEST,
        recoverable=False,
        suggestions=(
            "Correct the listed options and export again",
            "Check that the diagram rendered to valid SVG",
        ),
    ),
    "UNSUPPORTED_FORMAT": ErrorDefinition(
        "UNSUPPORTED_FORMAT",
        "Requested export format is not supported.",
        status.HTTP_400_BAD_REQUEST,
        recoverable=False,
        suggestions=("Choose one of: svg, png, jpg, webp, pdf",),
    ),
    "RASTER_TAINTED": ErrorDefinition(
        "RASTER_TAINTED",
        "The diagram references external resources and cannot be rasterized safely.",
        HTTP_STATUS_UNPROCESSABLE,
        recoverable=True,
        suggestions=(
            "Try exporting as SVG instead",
            "Remove external image or font references from the diagram",
        ),
    ),
    "RASTERIZATION_FAILED": ErrorDefinition(
        "RASTERIZATION_FAILED",
        "The diagram could not be rasterized.",
        HTTP_STATUS_UNPROCESSABLE,
        recoverable=True,
        suggestions=(
            "Try a lower scale factor",
            "Try exporting as SVG instead",
            "Check if the diagram rendered correctly",
        ),
    ),
    "VECTOR_PARSE_FAILED": ErrorDefinition(
        "VECTOR_PARSE_FAILED",
        "The SVG document could not be parsed.",
        HTTP_STATUS_UNPROCESSABLE,
        recoverable=False,
        suggestions=(
            "Check if the diagram rendered correctly",
            "Try a simpler diagram",
            "Re-render the diagram and try again",
        ),
    ),
    "DIMENSION_LIMIT": ErrorDefinition(
        "DIMENSION_LIMIT",
        "The requested output size exceeds supported limits.",
        HTTP_STATUS_UNPROCESSABLE,
        recoverable=True,
        suggestions=(
            "Use smaller dimensions",
            "Try a lower scale factor",
            "Export as vector format (SVG) instead",
        ),
    ),
    "DOCUMENT_BUILD_FAILED": ErrorDefinition(
        "DOCUMENT_BUILD_FAILED",
        "PDF generation failed.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        recoverable=True,
        suggestions=(
            "Try a different paper size or margins",
            "Try exporting as PNG or SVG instead",
        ),
    ),
    "EXPORT_CANCELLED": ErrorDefinition(
        "EXPORT_CANCELLED",
        "Export was cancelled.",
        status.HTTP_409_CONFLICT,
        recoverable=True,
        suggestions=("Start the export again",),
    ),
    "EXPORT_TIMEOUT": ErrorDefinition(
        "EXPORT_TIMEOUT",
        "Export timed out.",
        status.HTTP_504_GATEWAY_TIMEOUT,
        recoverable=True,
        suggestions=("Try again", "Try a lower scale factor or DPI"),
    ),
    "NETWORK_FAILED": ErrorDefinition(
        "NETWORK_FAILED",
        "A network error interrupted the export.",
        status.HTTP_503_SERVICE_UNAVAILABLE,
        recoverable=True,
        suggestions=("Try again", "Check network connectivity"),
    ),
    "PAYLOAD_TOO_LARGE": ErrorDefinition(
        "PAYLOAD_TOO_LARGE",
        "Request payload exceeds allowed size.",
        HTTP_STATUS_PAYLOAD_TOO_LARGE,
    ),
    "INTERNAL": ErrorDefinition("INTERNAL", "Internal server error.", status.HTTP_500_INTERNAL_SERVER_ERROR),
}

DEFAULT_ERROR_DEFINITION = ErrorDefinition(
    "EXPORT_FAILED",
    "Export failed.",
    status.HTTP_500_INTERNAL_SERVER_ERROR,
    recoverable=False,
    suggestions=(
        "Try again",
        "Try a different export format",
        "Check the service logs for more details",
    ),
)


def get_error_definition(code: str) -> ErrorDefinition:
    """Return the definition registered for ``code`` or the generic fallback."""

    return ERROR_DEFINITIONS.get(code, DEFAULT_ERROR_DEFINITION)


class ServiceError(Exception):
    """Structured error for router responses."""

    def __init__(
        self,
        *,
        code: str,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code


class ExportServiceError(Exception):
    """Structured error raised inside the export pipeline."""

    code = DEFAULT_ERROR_DEFINITION.code

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def definition(self) -> ErrorDefinition:
        return get_error_definition(self.code)


class ExportValidationError(ExportServiceError):
    """Raised when the export input violates one or more rules."""

    code = "VALIDATION_FAILED"

    def __init__(self, violations: list[str]) -> None:
        message = "; ".join(violations) if violations else "Export input failed validation."
        super().__init__(message, {"violations": list(violations)})
        self.violations = list(violations)


class ExportCancelledError(ExportServiceError):
    """Raised at a stage boundary once cancellation was requested."""

    code = "EXPORT_CANCELLED"


class EncodingError(ExportServiceError):
    """Base class for format specific failures."""

    code = "EXPORT_FAILED"


class UnsupportedFormatError(EncodingError):
    code = "UNSUPPORTED_FORMAT"


class RasterTaintError(EncodingError):
    """The source references cross-origin content that cannot be rasterized."""

    code = "RASTER_TAINTED"


class RasterizationError(EncodingError):
    code = "RASTERIZATION_FAILED"


class VectorParseError(EncodingError):
    code = "VECTOR_PARSE_FAILED"


class DimensionLimitError(EncodingError):
    code = "DIMENSION_LIMIT"


class DocumentBuildError(EncodingError):
    code = "DOCUMENT_BUILD_FAILED"


__all__ = [
    "DEFAULT_ERROR_DEFINITION",
    "DimensionLimitError",
    "DocumentBuildError",
    "ERROR_DEFINITIONS",
    "EncodingError",
    "ErrorDefinition",
    "ExportCancelledError",
    "ExportServiceError",
    "ExportValidationError",
    "RasterTaintError",
    "RasterizationError",
    "ServiceError",
    "UnsupportedFormatError",
    "VectorParseError",
    "get_error_definition",
]
