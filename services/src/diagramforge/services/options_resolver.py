"""Merge caller supplied export options over preset defaults."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from .constants import DEFAULT_BACKGROUND_OPACITY, DEFAULT_FILENAME
from .models.options import ExportOptions
from .preferences import DEFAULT_PREFERENCES, ExportPreferences
from .service_errors import ExportValidationError

# Sections merged key by key; every other key replaces the default outright.
_NESTED_SECTIONS = ("quality", "background", "metadata", "pdf_options")


def build_defaults(preferences: ExportPreferences, *, quality_preset: str | None = None) -> dict[str, Any]:
    """Return the default option tree derived from ``preferences``."""

    margin = preferences.margin
    return {
        "format": preferences.default_format,
        "filename": DEFAULT_FILENAME,
        "quality": preferences.quality_defaults(quality_preset),
        "background": {
            "mode": preferences.default_background_mode,
            "color": preferences.default_background_color,
            "opacity": DEFAULT_BACKGROUND_OPACITY,
        },
        "dimensions": None,
        "metadata": {},
        "pdf_options": {
            "orientation": preferences.orientation,
            "paper_size": preferences.paper_size,
            "custom_size": None,
            "margins": {"top": margin, "right": margin, "bottom": margin, "left": margin},
            "compress": True,
            "embed_fonts": True,
        },
        "embed_svg_fonts": True,
        "optimize_svg": True,
    }


def _merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in overrides.items():
        if key in _NESTED_SECTIONS:
            if value is None:
                continue
            if not isinstance(value, Mapping):
                merged[key] = value
                continue
            section = dict(merged.get(key) or {})
            for sub_key, sub_value in value.items():
                if sub_key == "margins" and isinstance(sub_value, Mapping):
                    margins = dict(section.get("margins") or {})
                    margins.update(sub_value)
                    section["margins"] = margins
                else:
                    section[sub_key] = sub_value
            merged[key] = section
        else:
            merged[key] = value
    return merged


def _as_mapping(partial: Mapping[str, Any] | BaseModel | None) -> dict[str, Any]:
    if partial is None:
        return {}
    if isinstance(partial, BaseModel):
        return partial.model_dump(exclude_unset=True)
    return dict(partial)


def _format_validation_errors(exc: ValidationError) -> list[str]:
    violations: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "options"
        violations.append(f"{location}: {error.get('msg', 'invalid value')}")
    return violations


def resolve_options(
    partial: Mapping[str, Any] | BaseModel | None = None,
    *,
    preferences: ExportPreferences | None = None,
) -> ExportOptions:
    """Return a complete :class:`ExportOptions` for ``partial``.

    ``partial`` may be a plain mapping (as received over HTTP) or an options
    model, in which case only explicitly set fields override the defaults. A
    ``quality_preset`` key selects the quality base (web, print or high)
    before explicit quality fields are applied. The merge has no side effects.
    """

    prefs = preferences or DEFAULT_PREFERENCES
    overrides = _as_mapping(partial)
    quality_preset = overrides.pop("quality_preset", None)

    merged = _merge(build_defaults(prefs, quality_preset=quality_preset), overrides)

    background = merged["background"]
    if isinstance(background, dict) and background.get("mode") == "theme" and not background.get("color"):
        background["color"] = prefs.theme_color

    try:
        return ExportOptions.model_validate(merged)
    except ValidationError as exc:
        raise ExportValidationError(_format_validation_errors(exc)) from exc


__all__ = ["build_defaults", "resolve_options"]
