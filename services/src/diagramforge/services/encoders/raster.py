"""Bitmap encoders (PNG, JPEG, WebP) built on cairosvg and Pillow."""

from __future__ import annotations

import asyncio
import copy
import io
import logging

import cairosvg
from PIL import Image, ImageColor

from ..constants import MAX_DIMENSION, MAX_RASTER_PIXELS, MIME_TYPES
from ..models.options import BackgroundSettings, ExportMetadata, ExportOptions
from ..normalizer import NormalizedDocument
from ..service_errors import DimensionLimitError, RasterizationError, RasterTaintError
from ..svg_document import external_references, serialize_svg, set_dimensions
from .base import EncodedArtifact, Encoder, base64_data_url

LOGGER = logging.getLogger(__name__)

DEFAULT_LOSSY_QUALITY = 0.95
_MODE_COLORS = {"white": "#ffffff", "black": "#000000"}
_ALPHA_THRESHOLD = 128


def background_rgba(background: BackgroundSettings) -> tuple[int, int, int, int] | None:
    """Return the RGBA fill for ``background``; ``None`` means transparent."""

    if background.mode == "transparent":
        return None
    color = _MODE_COLORS.get(background.mode) or background.color or "#ffffff"
    try:
        channels = ImageColor.getrgb(color)
    except ValueError as exc:
        raise RasterizationError(f"Unrecognised background colour: {color}", {"color": color}) from exc
    red, green, blue = channels[:3]
    alpha = channels[3] if len(channels) == 4 else 255
    return red, green, blue, round(alpha * background.opacity)


def ensure_untainted(document: NormalizedDocument) -> None:
    """Refuse documents that would pull cross-origin content into a bitmap."""

    references = external_references(document.root)
    if references:
        raise RasterTaintError(
            "Canvas tainted - cannot export. Try exporting as SVG instead.",
            {"references": references[:10]},
        )


def surface_size(width: float, height: float, scale: float) -> tuple[int, int]:
    return max(1, round(width * scale)), max(1, round(height * scale))


def _check_surface(width_px: int, height_px: int) -> None:
    if width_px > MAX_DIMENSION or height_px > MAX_DIMENSION or width_px * height_px > MAX_RASTER_PIXELS:
        raise DimensionLimitError(
            f"Output surface {width_px}x{height_px} exceeds supported limits",
            {"width": width_px, "height": height_px, "max_dimension": MAX_DIMENSION},
        )


def _render_source(document: NormalizedDocument) -> bytes:
    # cairosvg only scales to the requested output size when a viewBox exists.
    root = copy.deepcopy(document.root)
    if root.get("viewBox") is None:
        set_dimensions(root, document.width, document.height)
    return serialize_svg(root).encode("utf-8")


def rasterize(
    document: NormalizedDocument,
    width_px: int,
    height_px: int,
    *,
    background: BackgroundSettings,
    antialiasing: bool = True,
) -> Image.Image:
    """Render ``document`` onto an RGBA surface of the given pixel size.

    Blocking; callers on the event loop should run it in a worker thread.
    """

    _check_surface(width_px, height_px)
    fill = background_rgba(background)

    try:
        png = cairosvg.svg2png(
            bytestring=_render_source(document),
            output_width=width_px,
            output_height=height_px,
        )
    except MemoryError as exc:
        raise DimensionLimitError(
            "Not enough memory to render the requested surface",
            {"width": width_px, "height": height_px},
        ) from exc
    except Exception as exc:  # noqa: BLE001 - renderer failures become RasterizationError
        raise RasterizationError(f"Failed to load SVG image: {exc}") from exc

    try:
        artwork = Image.open(io.BytesIO(png)).convert("RGBA")
    except Image.DecompressionBombError as exc:
        raise DimensionLimitError(str(exc), {"width": width_px, "height": height_px}) from exc
    except OSError as exc:
        raise RasterizationError(f"Failed to decode rendered image: {exc}") from exc

    if artwork.size != (width_px, height_px):
        artwork = artwork.resize((width_px, height_px), Image.Resampling.LANCZOS)

    if not antialiasing:
        alpha = artwork.getchannel("A").point(lambda value: 255 if value >= _ALPHA_THRESHOLD else 0)
        artwork.putalpha(alpha)

    if fill is None:
        return artwork
    surface = Image.new("RGBA", (width_px, height_px), fill)
    surface.alpha_composite(artwork)
    return surface


def encode_image(image: Image.Image, fmt: str, *, dpi: int, compression: float | None) -> bytes:
    """Encode an RGBA surface as ``fmt`` (png, jpg or webp)."""

    quality = round((compression if compression is not None else DEFAULT_LOSSY_QUALITY) * 100)
    buffer = io.BytesIO()
    try:
        if fmt == "png":
            image.save(buffer, format="PNG", dpi=(dpi, dpi))
        elif fmt == "jpg":
            flattened = Image.new("RGB", image.size, (255, 255, 255))
            flattened.paste(image, mask=image.getchannel("A"))
            flattened.save(buffer, format="JPEG", quality=quality, dpi=(dpi, dpi))
        elif fmt == "webp":
            image.save(buffer, format="WEBP", quality=quality)
        else:
            raise RasterizationError(f"No bitmap codec for format: {fmt}", {"format": fmt})
    except (OSError, ValueError) as exc:
        raise RasterizationError(f"Failed to create image blob: {exc}", {"format": fmt}) from exc
    return buffer.getvalue()


class RasterEncoder(Encoder):
    """Shared bitmap pipeline; subclasses pick the codec."""

    def _render_and_encode(self, document: NormalizedDocument, options: ExportOptions) -> tuple[bytes, int, int]:
        width_px, height_px = surface_size(document.width, document.height, options.quality.scale)
        image = rasterize(
            document,
            width_px,
            height_px,
            background=options.background,
            antialiasing=options.quality.antialiasing,
        )
        payload = encode_image(
            image,
            self.format,
            dpi=options.quality.dpi,
            compression=options.quality.compression,
        )
        return payload, width_px, height_px

    async def encode(
        self,
        document: NormalizedDocument,
        options: ExportOptions,
        metadata: ExportMetadata,
    ) -> EncodedArtifact:
        ensure_untainted(document)
        payload, width_px, height_px = await asyncio.to_thread(self._render_and_encode, document, options)
        LOGGER.debug(
            "encoder.raster.completed",
            extra={
                "extra_payload": {
                    "format": self.format,
                    "width": width_px,
                    "height": height_px,
                    "bytes": len(payload),
                }
            },
        )
        return EncodedArtifact(
            payload=payload,
            mime_type=self.mime_type,
            width=float(width_px),
            height=float(height_px),
            data_url=base64_data_url(payload, self.mime_type),
        )


class PngEncoder(RasterEncoder):
    format = "png"
    mime_type = MIME_TYPES["png"]
    supports_alpha = True


class JpegEncoder(RasterEncoder):
    format = "jpg"
    mime_type = MIME_TYPES["jpg"]
    supports_alpha = False


class WebpEncoder(RasterEncoder):
    format = "webp"
    mime_type = MIME_TYPES["webp"]
    supports_alpha = True


__all__ = [
    "JpegEncoder",
    "PngEncoder",
    "RasterEncoder",
    "WebpEncoder",
    "background_rgba",
    "encode_image",
    "ensure_untainted",
    "rasterize",
    "surface_size",
]
