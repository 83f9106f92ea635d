"""Input validation performed before any rendering work starts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from PIL import ImageColor

from .constants import (
    MAX_COMPRESSION,
    MAX_DIMENSION,
    MAX_DPI,
    MAX_SCALE,
    MIN_COMPRESSION,
    MIN_DPI,
    MIN_SCALE,
    PAPER_SIZES,
)
from .encoders.base import EncoderRegistry
from .models.options import ExportOptions
from .service_errors import ExportValidationError, VectorParseError
from .svg_document import parse_svg

LOGGER = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Every rule violated by an export request, in check order."""

    violations: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def add(self, message: str) -> None:
        self.violations.append(message)


def _check_document(svg_text: str, report: ValidationReport) -> None:
    if not svg_text or not svg_text.strip():
        report.add("SVG content is required")
        return
    try:
        parse_svg(svg_text)
    except VectorParseError as exc:
        report.add(exc.message)


def _check_pdf_geometry(options: ExportOptions, report: ValidationReport) -> None:
    pdf = options.pdf_options
    margins = pdf.margins
    if min(margins.top, margins.right, margins.bottom, margins.left) < 0:
        report.add("PDF margins must not be negative")
        return

    if pdf.paper_size == "custom":
        if pdf.custom_size is None:
            report.add("Custom paper size is required when paper_size is 'custom'")
            return
        if pdf.custom_size.width <= 0 or pdf.custom_size.height <= 0:
            report.add("Custom paper size must be positive")
            return
        paper = (pdf.custom_size.width, pdf.custom_size.height)
    else:
        paper = PAPER_SIZES[pdf.paper_size]

    # Orientation can swap the page, so the margin box must fit both ways.
    short_side = min(paper)
    if margins.left + margins.right >= short_side or margins.top + margins.bottom >= short_side:
        report.add("PDF margins leave no room for the diagram")


def validate_export_input(
    svg_text: str,
    options: ExportOptions,
    *,
    registry: EncoderRegistry | None = None,
) -> ValidationReport:
    """Check ``svg_text`` and ``options``, collecting every violation."""

    report = ValidationReport()
    _check_document(svg_text, report)

    if not options.filename or not options.filename.strip():
        report.add("Filename is required")

    if options.dimensions is not None:
        width, height = options.dimensions.width, options.dimensions.height
        if width <= 0 or height <= 0:
            report.add("Invalid dimensions: width and height must be positive")
        elif width > MAX_DIMENSION or height > MAX_DIMENSION:
            report.add(f"Dimensions too large: maximum size is {MAX_DIMENSION}px")

    quality = options.quality
    if quality.dpi < MIN_DPI or quality.dpi > MAX_DPI:
        report.add(f"DPI must be between {MIN_DPI} and {MAX_DPI}")
    if quality.scale < MIN_SCALE or quality.scale > MAX_SCALE:
        report.add(f"Scale must be between {MIN_SCALE:g} and {MAX_SCALE:g}")
    if quality.compression is not None and not MIN_COMPRESSION <= quality.compression <= MAX_COMPRESSION:
        report.add(f"Compression must be between {MIN_COMPRESSION:g} and {MAX_COMPRESSION:g}")

    background = options.background
    if background.mode == "transparent" and registry is not None and registry.supports(options.format):
        if not registry.supports_alpha(options.format):
            report.add(f"Transparent background is not supported for {options.format.upper()} export")
    if background.color:
        try:
            ImageColor.getrgb(background.color)
        except ValueError:
            report.add(f"Invalid background color: {background.color}")

    if options.format == "pdf":
        _check_pdf_geometry(options, report)

    if not report.valid:
        LOGGER.info(
            "validation.failed",
            extra={"extra_payload": {"format": options.format, "violations": report.violations}},
        )
    return report


def ensure_valid(
    svg_text: str,
    options: ExportOptions,
    *,
    registry: EncoderRegistry | None = None,
) -> ValidationReport:
    """Raise :class:`ExportValidationError` unless the input passes every check."""

    report = validate_export_input(svg_text, options, registry=registry)
    if not report.valid:
        raise ExportValidationError(report.violations)
    return report


__all__ = ["ValidationReport", "ensure_valid", "validate_export_input"]
