"""Shared baseline constants for the DiagramForge export services."""

from __future__ import annotations

from typing import Final, Mapping

SERVICE_NAME: Final[str] = "diagramforge"
DEFAULT_CREATOR: Final[str] = "DiagramForge"
DEFAULT_PRODUCER: Final[str] = "DiagramForge Export Service 1.0"

DEFAULT_FILENAME: Final[str] = "diagram"
DEFAULT_FORMAT: Final[str] = "svg"

FORMAT_ALIASES: Final[Mapping[str, str]] = {"jpeg": "jpg"}

MIME_TYPES: Final[Mapping[str, str]] = {
    "svg": "image/svg+xml",
    "png": "image/png",
    "jpg": "image/jpeg",
    "webp": "image/webp",
    "pdf": "application/pdf",
}

MAX_DIMENSION: Final[int] = 32767
# Upper bound on the rendered surface area, below Pillow's decompression bomb limit.
MAX_RASTER_PIXELS: Final[int] = 160_000_000
MIN_DPI: Final[int] = 72
MAX_DPI: Final[int] = 2400
MIN_SCALE: Final[float] = 0.1
MAX_SCALE: Final[float] = 10.0
MIN_COMPRESSION: Final[float] = 0.1
MAX_COMPRESSION: Final[float] = 1.0

# Used when the source document declares neither width/height nor a viewBox.
FALLBACK_WIDTH: Final[float] = 800.0
FALLBACK_HEIGHT: Final[float] = 600.0

# Page sizes in PostScript points, portrait orientation.
PAPER_SIZES: Final[Mapping[str, tuple[float, float]]] = {
    "A4": (595.0, 842.0),
    "A3": (842.0, 1191.0),
    "A5": (420.0, 595.0),
    "Letter": (612.0, 792.0),
    "Legal": (612.0, 1008.0),
    "Tabloid": (792.0, 1224.0),
}

QUALITY_PRESETS: Final[Mapping[str, Mapping[str, float | int | bool]]] = {
    "web": {"dpi": 72, "scale": 1.0, "compression": 0.8, "antialiasing": True},
    "print": {"dpi": 300, "scale": 2.0, "compression": 0.95, "antialiasing": True},
    "high": {"dpi": 600, "scale": 3.0, "compression": 1.0, "antialiasing": True},
}
DEFAULT_QUALITY_PRESET: Final[str] = "print"

DEFAULT_BACKGROUND_MODE: Final[str] = "white"
DEFAULT_BACKGROUND_OPACITY: Final[float] = 1.0
DEFAULT_THEME_COLOR: Final[str] = "#ffffff"

DEFAULT_PDF_MARGIN: Final[float] = 20.0
DEFAULT_PAPER_SIZE: Final[str] = "A4"
DEFAULT_ORIENTATION: Final[str] = "auto"

SVG_NAMESPACE: Final[str] = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE: Final[str] = "http://www.w3.org/1999/xlink"


__all__ = [
    "DEFAULT_BACKGROUND_MODE",
    "DEFAULT_BACKGROUND_OPACITY",
    "DEFAULT_CREATOR",
    "DEFAULT_FILENAME",
    "DEFAULT_FORMAT",
    "DEFAULT_ORIENTATION",
    "DEFAULT_PAPER_SIZE",
    "DEFAULT_PDF_MARGIN",
    "DEFAULT_PRODUCER",
    "DEFAULT_QUALITY_PRESET",
    "DEFAULT_THEME_COLOR",
    "FALLBACK_HEIGHT",
    "FALLBACK_WIDTH",
    "FORMAT_ALIASES",
    "MAX_COMPRESSION",
    "MAX_DIMENSION",
    "MAX_DPI",
    "MAX_RASTER_PIXELS",
    "MAX_SCALE",
    "MIME_TYPES",
    "MIN_COMPRESSION",
    "MIN_DPI",
    "MIN_SCALE",
    "PAPER_SIZES",
    "QUALITY_PRESETS",
    "SERVICE_NAME",
    "SVG_NAMESPACE",
    "XLINK_NAMESPACE",
]
