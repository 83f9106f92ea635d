"""Export option models shared by the pipeline and the HTTP surface."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import (
    DEFAULT_BACKGROUND_MODE,
    DEFAULT_BACKGROUND_OPACITY,
    DEFAULT_FILENAME,
    DEFAULT_FORMAT,
    DEFAULT_ORIENTATION,
    DEFAULT_PAPER_SIZE,
    DEFAULT_PDF_MARGIN,
    FORMAT_ALIASES,
    QUALITY_PRESETS,
    DEFAULT_QUALITY_PRESET,
)

BackgroundMode = Literal["transparent", "white", "black", "theme", "custom"]
PdfOrientation = Literal["portrait", "landscape", "auto"]
PaperSize = Literal["A4", "A3", "A5", "Letter", "Legal", "Tabloid", "custom"]

__all__ = [
    "BackgroundMode",
    "BackgroundSettings",
    "BatchExportOptions",
    "Dimensions",
    "ExportMetadata",
    "ExportOptions",
    "Margins",
    "PaperSize",
    "PdfOptions",
    "PdfOrientation",
    "QualitySettings",
    "normalise_format",
]


def normalise_format(value: str) -> str:
    """Return the canonical lowercase format tag for ``value``."""

    tag = str(value).strip().lower().lstrip(".")
    return FORMAT_ALIASES.get(tag, tag)


class Dimensions(BaseModel):
    """Width/height pair in CSS pixels (or points for page geometry)."""

    model_config = ConfigDict(extra="forbid")

    width: float
    height: float


class QualitySettings(BaseModel):
    """Resolution and encoder quality knobs.

    Ranges are enforced by the input validator so that every violation can be
    reported at once instead of failing on the first field.
    """

    model_config = ConfigDict(extra="forbid")

    dpi: int = int(QUALITY_PRESETS[DEFAULT_QUALITY_PRESET]["dpi"])
    scale: float = float(QUALITY_PRESETS[DEFAULT_QUALITY_PRESET]["scale"])
    compression: float | None = float(QUALITY_PRESETS[DEFAULT_QUALITY_PRESET]["compression"])
    antialiasing: bool = True


class BackgroundSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: BackgroundMode = DEFAULT_BACKGROUND_MODE  # type: ignore[assignment]
    color: str | None = None
    opacity: float = Field(default=DEFAULT_BACKGROUND_OPACITY, ge=0.0, le=1.0)


class ExportMetadata(BaseModel):
    """Document metadata embedded into artifacts that support it."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: list[str] = Field(default_factory=list)
    creator: str | None = None
    producer: str | None = None
    creation_date: datetime | None = None
    modification_date: datetime | None = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class Margins(BaseModel):
    model_config = ConfigDict(extra="forbid")

    top: float = DEFAULT_PDF_MARGIN
    right: float = DEFAULT_PDF_MARGIN
    bottom: float = DEFAULT_PDF_MARGIN
    left: float = DEFAULT_PDF_MARGIN


class PdfOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    orientation: PdfOrientation = DEFAULT_ORIENTATION  # type: ignore[assignment]
    paper_size: PaperSize = DEFAULT_PAPER_SIZE  # type: ignore[assignment]
    custom_size: Dimensions | None = None
    margins: Margins = Field(default_factory=Margins)
    compress: bool = True
    embed_fonts: bool = True


class ExportOptions(BaseModel):
    """Fully resolved configuration for a single export."""

    model_config = ConfigDict(extra="forbid")

    format: str = DEFAULT_FORMAT
    filename: str = DEFAULT_FILENAME
    quality: QualitySettings = Field(default_factory=QualitySettings)
    background: BackgroundSettings = Field(default_factory=BackgroundSettings)
    dimensions: Dimensions | None = None
    metadata: ExportMetadata = Field(default_factory=ExportMetadata)
    pdf_options: PdfOptions = Field(default_factory=PdfOptions)
    embed_svg_fonts: bool = True
    optimize_svg: bool = True

    @field_validator("format", mode="before")
    @classmethod
    def _normalise_format(cls, value: object) -> object:
        if isinstance(value, str):
            return normalise_format(value)
        return value


class BatchExportOptions(BaseModel):
    """Formats plus shared options for a batch export."""

    model_config = ConfigDict(extra="forbid")

    formats: list[str] = Field(min_length=1)
    base_filename: str = DEFAULT_FILENAME
    options: dict[str, object] = Field(default_factory=dict)
    zip_results: bool = False

    @field_validator("formats", mode="before")
    @classmethod
    def _normalise_formats(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            return [normalise_format(item) if isinstance(item, str) else item for item in value]
        return value

    @field_validator("options")
    @classmethod
    def _strip_item_fields(cls, value: dict[str, object]) -> dict[str, object]:
        return {key: item for key, item in value.items() if key not in {"format", "filename"}}
