"""Format encoders and the registry used to select them."""

from __future__ import annotations

from .base import EncodedArtifact, Encoder, EncoderRegistry, base64_data_url, filename_for
from .document import PageLayout, PdfEncoder, compute_page_layout
from .raster import JpegEncoder, PngEncoder, RasterEncoder, WebpEncoder
from .svg import SvgEncoder


def default_registry() -> EncoderRegistry:
    """Return a registry with every built-in encoder."""

    return EncoderRegistry([SvgEncoder(), PngEncoder(), JpegEncoder(), WebpEncoder(), PdfEncoder()])


__all__ = [
    "EncodedArtifact",
    "Encoder",
    "EncoderRegistry",
    "JpegEncoder",
    "PageLayout",
    "PdfEncoder",
    "PngEncoder",
    "RasterEncoder",
    "SvgEncoder",
    "WebpEncoder",
    "base64_data_url",
    "compute_page_layout",
    "default_registry",
    "filename_for",
]
