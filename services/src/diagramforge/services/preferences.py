"""Read-only export defaults supplied by a preferences file."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import (
    DEFAULT_BACKGROUND_MODE,
    DEFAULT_FORMAT,
    DEFAULT_ORIENTATION,
    DEFAULT_PAPER_SIZE,
    DEFAULT_PDF_MARGIN,
    DEFAULT_QUALITY_PRESET,
    DEFAULT_THEME_COLOR,
    QUALITY_PRESETS,
)
from .models.options import BackgroundMode, PaperSize, PdfOrientation

LOGGER = logging.getLogger(__name__)


class PreferencesError(RuntimeError):
    """Raised when a preferences file cannot be loaded."""


class ExportPreferences(BaseModel):
    """Process-wide defaults consulted by the options resolver."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    default_format: str = DEFAULT_FORMAT
    quality_preset: str = DEFAULT_QUALITY_PRESET
    default_background_mode: BackgroundMode = DEFAULT_BACKGROUND_MODE  # type: ignore[assignment]
    default_background_color: str | None = None
    theme_color: str = DEFAULT_THEME_COLOR
    paper_size: PaperSize = DEFAULT_PAPER_SIZE  # type: ignore[assignment]
    orientation: PdfOrientation = DEFAULT_ORIENTATION  # type: ignore[assignment]
    margin: float = Field(default=DEFAULT_PDF_MARGIN, ge=0.0)

    def quality_defaults(self, preset: str | None = None) -> dict[str, Any]:
        """Return the quality values of ``preset`` (or the configured preset)."""

        name = preset or self.quality_preset
        if name not in QUALITY_PRESETS:
            LOGGER.warning(
                "preferences.unknown_quality_preset",
                extra={"extra_payload": {"preset": name}},
            )
            name = DEFAULT_QUALITY_PRESET
        return dict(QUALITY_PRESETS[name])


DEFAULT_PREFERENCES = ExportPreferences()


def _coerce_mapping(raw: Any, path: Path) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise PreferencesError(f"Preferences file must contain a mapping: {path}")
    section = raw.get("export", raw)
    if not isinstance(section, Mapping):
        raise PreferencesError(f"'export' section must be a mapping: {path}")
    return section


@lru_cache(maxsize=8)
def _load_cached(path_str: str) -> ExportPreferences:
    path = Path(path_str)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise PreferencesError(f"Unable to read preferences file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise PreferencesError(f"Invalid YAML in preferences file {path}: {exc}") from exc

    try:
        preferences = ExportPreferences.model_validate(dict(_coerce_mapping(raw, path)))
    except ValidationError as exc:
        raise PreferencesError(f"Preferences file {path} failed validation: {exc.errors()}") from exc

    LOGGER.info(
        "preferences.loaded",
        extra={"extra_payload": {"quality_preset": preferences.quality_preset}},
    )
    return preferences


def load_preferences(path: Path | str | None) -> ExportPreferences:
    """Return cached preferences for ``path`` or the built-in defaults."""

    if path is None:
        return DEFAULT_PREFERENCES
    return _load_cached(str(Path(path).resolve()))


def clear_preferences_cache() -> None:
    """Drop cached preferences so the next load re-reads the file."""

    _load_cached.cache_clear()


__all__ = [
    "DEFAULT_PREFERENCES",
    "ExportPreferences",
    "PreferencesError",
    "clear_preferences_cache",
    "load_preferences",
]
