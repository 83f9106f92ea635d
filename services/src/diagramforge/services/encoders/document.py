"""Paginated PDF encoder built with reportlab."""

from __future__ import annotations

import asyncio
import io
import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..constants import DEFAULT_PAPER_SIZE, MAX_DIMENSION, MAX_RASTER_PIXELS, MIME_TYPES, PAPER_SIZES
from ..models.options import ExportMetadata, ExportOptions, PdfOptions
from ..normalizer import NormalizedDocument
from ..service_errors import DocumentBuildError, ExportServiceError
from ..svg_document import local_name, parse_length, parse_view_box
from .base import EncodedArtifact, Encoder, base64_data_url
from .raster import ensure_untainted, rasterize

LOGGER = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0
TEXT_LAYER_FONT = "Helvetica"
DEFAULT_FONT_SIZE = 16.0

_TRANSLATE_RE = re.compile(r"translate\(\s*([-+\d.eE]+)(?:[\s,]+([-+\d.eE]+))?\s*\)")
_MATRIX_RE = re.compile(r"matrix\(\s*(?:[-+\d.eE]+[\s,]+){4}([-+\d.eE]+)[\s,]+([-+\d.eE]+)\s*\)")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


@dataclass(frozen=True)
class PageLayout:
    """Page geometry in points; ``x``/``y`` use a top-left origin."""

    page_width: float
    page_height: float
    orientation: str
    content_width: float
    content_height: float
    scale: float
    width: float
    height: float
    x: float
    y: float


def compute_page_layout(diagram_width: float, diagram_height: float, pdf_options: PdfOptions) -> PageLayout:
    """Place a ``diagram_width`` x ``diagram_height`` artwork on the page.

    The artwork is shrunk to fit the margin box but never enlarged, and is
    centred inside that box.
    """

    if diagram_width <= 0 or diagram_height <= 0:
        raise DocumentBuildError(
            "Diagram dimensions must be positive",
            {"width": diagram_width, "height": diagram_height},
        )

    if pdf_options.paper_size == "custom" and pdf_options.custom_size is not None:
        paper = (pdf_options.custom_size.width, pdf_options.custom_size.height)
    else:
        paper = PAPER_SIZES.get(pdf_options.paper_size, PAPER_SIZES[DEFAULT_PAPER_SIZE])

    if pdf_options.orientation == "auto":
        orientation = "landscape" if diagram_width > diagram_height else "portrait"
    else:
        orientation = pdf_options.orientation

    short_side, long_side = sorted(paper)
    if orientation == "landscape":
        page_width, page_height = long_side, short_side
    else:
        page_width, page_height = short_side, long_side

    margins = pdf_options.margins
    content_width = page_width - margins.left - margins.right
    content_height = page_height - margins.top - margins.bottom
    if content_width <= 0 or content_height <= 0:
        raise DocumentBuildError(
            "Margins leave no room for the diagram",
            {"content_width": content_width, "content_height": content_height},
        )

    scale = min(content_width / diagram_width, content_height / diagram_height, 1.0)
    width = diagram_width * scale
    height = diagram_height * scale
    return PageLayout(
        page_width=page_width,
        page_height=page_height,
        orientation=orientation,
        content_width=content_width,
        content_height=content_height,
        scale=scale,
        width=width,
        height=height,
        x=margins.left + (content_width - width) / 2,
        y=margins.top + (content_height - height) / 2,
    )


def artwork_pixels(layout: PageLayout, dpi: int) -> tuple[int, int]:
    """Pixel size used to embed the artwork at ``dpi``, clamped to raster limits."""

    density = dpi / POINTS_PER_INCH
    width = layout.width * density
    height = layout.height * density
    shrink = min(
        1.0,
        MAX_DIMENSION / max(width, 1.0),
        MAX_DIMENSION / max(height, 1.0),
        math.sqrt(MAX_RASTER_PIXELS / max(width * height, 1.0)),
    )
    return max(1, round(width * shrink)), max(1, round(height * shrink))


def _translation(transform: str | None) -> tuple[float, float]:
    if not transform:
        return 0.0, 0.0
    dx = dy = 0.0
    for match in _TRANSLATE_RE.finditer(transform):
        dx += float(match.group(1))
        dy += float(match.group(2) or 0.0)
    for match in _MATRIX_RE.finditer(transform):
        dx += float(match.group(1))
        dy += float(match.group(2))
    return dx, dy


def _first_number(value: str | None) -> float:
    if not value:
        return 0.0
    match = _NUMBER_RE.search(value)
    return float(match.group(0)) if match else 0.0


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    font_size: float
    anchor: str


def collect_text_runs(root: ET.Element) -> list[TextRun]:
    """Return ``<text>`` contents with positions in document user units."""

    runs: list[TextRun] = []

    def visit(element: ET.Element, offset_x: float, offset_y: float) -> None:
        dx, dy = _translation(element.get("transform"))
        offset_x += dx
        offset_y += dy
        if local_name(element.tag) == "text":
            content = " ".join("".join(element.itertext()).split())
            if content:
                runs.append(
                    TextRun(
                        text=content,
                        x=offset_x + _first_number(element.get("x")),
                        y=offset_y + _first_number(element.get("y")),
                        font_size=parse_length(element.get("font-size")) or DEFAULT_FONT_SIZE,
                        anchor=element.get("text-anchor") or "start",
                    )
                )
            return
        for child in element:
            if isinstance(child.tag, str):
                visit(child, offset_x, offset_y)

    visit(root, 0.0, 0.0)
    return runs


def _draw_text_layer(pdf: canvas.Canvas, document: NormalizedDocument, layout: PageLayout) -> int:
    """Overlay invisible, selectable text matching the artwork's labels."""

    view_box = parse_view_box(document.root.get("viewBox"))
    origin_x, origin_y = (view_box[0], view_box[1]) if view_box else (0.0, 0.0)
    unit_x = document.width / view_box[2] if view_box else 1.0
    unit_y = document.height / view_box[3] if view_box else 1.0

    drawn = 0
    for run in collect_text_runs(document.root):
        size = max(run.font_size * unit_y * layout.scale, 1.0)
        width = pdf.stringWidth(run.text, TEXT_LAYER_FONT, size)
        x = layout.x + (run.x - origin_x) * unit_x * layout.scale
        if run.anchor == "middle":
            x -= width / 2
        elif run.anchor == "end":
            x -= width
        y = layout.page_height - (layout.y + (run.y - origin_y) * unit_y * layout.scale)

        text = pdf.beginText()
        text.setTextRenderMode(3)
        text.setFont(TEXT_LAYER_FONT, size)
        text.setTextOrigin(x, y)
        text.textOut(run.text)
        pdf.drawText(text)
        drawn += 1
    return drawn


def _apply_metadata(pdf: canvas.Canvas, metadata: ExportMetadata, filename: str) -> None:
    pdf.setTitle(metadata.title or filename)
    if metadata.author:
        pdf.setAuthor(metadata.author)
    if metadata.subject:
        pdf.setSubject(metadata.subject)
    if metadata.keywords:
        pdf.setKeywords(", ".join(metadata.keywords))
    if metadata.creator:
        pdf.setCreator(metadata.creator)
    if metadata.producer:
        pdf.setProducer(metadata.producer)


def build_pdf(
    document: NormalizedDocument,
    options: ExportOptions,
    metadata: ExportMetadata,
    layout: PageLayout,
) -> bytes:
    """Assemble a single page PDF; blocking."""

    pdf_options = options.pdf_options
    width_px, height_px = artwork_pixels(layout, options.quality.dpi)
    image = rasterize(
        document,
        width_px,
        height_px,
        background=options.background,
        antialiasing=options.quality.antialiasing,
    )

    buffer = io.BytesIO()
    pdf = canvas.Canvas(
        buffer,
        pagesize=(layout.page_width, layout.page_height),
        pageCompression=1 if pdf_options.compress else 0,
    )
    _apply_metadata(pdf, metadata, options.filename)
    pdf.drawImage(
        ImageReader(image),
        layout.x,
        layout.page_height - layout.y - layout.height,
        width=layout.width,
        height=layout.height,
        mask="auto",
    )
    text_runs = _draw_text_layer(pdf, document, layout) if pdf_options.embed_fonts else 0
    pdf.showPage()
    pdf.save()

    LOGGER.debug(
        "encoder.pdf.completed",
        extra={
            "extra_payload": {
                "orientation": layout.orientation,
                "scale": round(layout.scale, 4),
                "image_px": [width_px, height_px],
                "text_runs": text_runs,
            }
        },
    )
    return buffer.getvalue()


class PdfEncoder(Encoder):
    format = "pdf"
    mime_type = MIME_TYPES["pdf"]
    supports_alpha = False

    def _build(
        self,
        document: NormalizedDocument,
        options: ExportOptions,
        metadata: ExportMetadata,
        layout: PageLayout,
    ) -> bytes:
        try:
            return build_pdf(document, options, metadata, layout)
        except ExportServiceError:
            raise
        except Exception as exc:  # noqa: BLE001 - surfaced as DocumentBuildError
            raise DocumentBuildError(f"PDF generation failed: {exc}") from exc

    async def encode(
        self,
        document: NormalizedDocument,
        options: ExportOptions,
        metadata: ExportMetadata,
    ) -> EncodedArtifact:
        ensure_untainted(document)
        layout = compute_page_layout(document.width, document.height, options.pdf_options)
        payload = await asyncio.to_thread(self._build, document, options, metadata, layout)
        return EncodedArtifact(
            payload=payload,
            mime_type=self.mime_type,
            width=layout.width,
            height=layout.height,
            data_url=base64_data_url(payload, self.mime_type),
        )


__all__ = [
    "PageLayout",
    "PdfEncoder",
    "TextRun",
    "artwork_pixels",
    "build_pdf",
    "collect_text_runs",
    "compute_page_layout",
]
