"""Tests for merging partial export options over defaults."""

from __future__ import annotations

import pytest

from diagramforge.services.models.options import ExportOptions
from diagramforge.services.options_resolver import resolve_options
from diagramforge.services.preferences import ExportPreferences
from diagramforge.services.service_errors import ExportValidationError


def test_empty_partial_yields_print_defaults() -> None:
    options = resolve_options({})

    assert options.format == "svg"
    assert options.filename == "diagram"
    assert options.quality.dpi == 300
    assert options.quality.scale == 2.0
    assert options.quality.compression == pytest.approx(0.95)
    assert options.quality.antialiasing is True
    assert options.background.mode == "white"
    assert options.background.opacity == 1.0
    assert options.pdf_options.paper_size == "A4"
    assert options.pdf_options.orientation == "auto"
    assert options.pdf_options.margins.top == 20
    assert options.pdf_options.compress is True
    assert options.pdf_options.embed_fonts is True
    assert options.embed_svg_fonts is True
    assert options.optimize_svg is True


def test_nested_sections_merge_key_by_key() -> None:
    options = resolve_options({"quality": {"dpi": 150}, "pdf_options": {"margins": {"left": 5}}})

    assert options.quality.dpi == 150
    assert options.quality.scale == 2.0
    assert options.pdf_options.margins.left == 5
    assert options.pdf_options.margins.right == 20


def test_quality_preset_selects_base_values() -> None:
    options = resolve_options({"quality_preset": "web", "quality": {"scale": 1.5}})

    assert options.quality.dpi == 72
    assert options.quality.compression == pytest.approx(0.8)
    assert options.quality.scale == 1.5


def test_unknown_quality_preset_falls_back_to_print() -> None:
    options = resolve_options({"quality_preset": "poster"})

    assert options.quality.dpi == 300


def test_jpeg_alias_is_normalised() -> None:
    assert resolve_options({"format": ".JPEG"}).format == "jpg"


def test_resolution_does_not_mutate_the_partial() -> None:
    partial = {"quality": {"dpi": 96}, "background": {"mode": "theme"}}
    snapshot = {"quality": {"dpi": 96}, "background": {"mode": "theme"}}

    resolve_options(partial)

    assert partial == snapshot


def test_theme_background_uses_preferences_colour() -> None:
    preferences = ExportPreferences(theme_color="#1e1e1e")

    options = resolve_options({"background": {"mode": "theme"}}, preferences=preferences)

    assert options.background.color == "#1e1e1e"


def test_preferences_supply_defaults() -> None:
    preferences = ExportPreferences(default_format="png", paper_size="Letter", margin=36)

    options = resolve_options(None, preferences=preferences)

    assert options.format == "png"
    assert options.pdf_options.paper_size == "Letter"
    assert options.pdf_options.margins.bottom == 36


def test_existing_options_model_only_overrides_explicit_fields() -> None:
    partial = ExportOptions(format="pdf")
    preferences = ExportPreferences(quality_preset="web")

    options = resolve_options(partial, preferences=preferences)

    assert options.format == "pdf"
    assert options.quality.dpi == 72


def test_type_errors_surface_as_validation_failures() -> None:
    with pytest.raises(ExportValidationError) as excinfo:
        resolve_options({"quality": {"dpi": "abc"}, "unknown": True})

    violations = excinfo.value.violations
    assert any(item.startswith("quality.dpi") for item in violations)
    assert any(item.startswith("unknown") for item in violations)
