"""Tests for the read-only preferences collaborator."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from diagramforge.services.preferences import (
    DEFAULT_PREFERENCES,
    PreferencesError,
    load_preferences,
)


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")
    return path


def test_missing_path_returns_builtin_defaults() -> None:
    assert load_preferences(None) is DEFAULT_PREFERENCES


def test_export_section_is_loaded(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "prefs.yaml",
        """
        export:
          default_format: png
          quality_preset: high
          theme_color: "#222222"
          paper_size: Letter
        """,
    )

    preferences = load_preferences(path)

    assert preferences.default_format == "png"
    assert preferences.quality_defaults()["dpi"] == 600
    assert preferences.theme_color == "#222222"
    assert preferences.paper_size == "Letter"


def test_top_level_mapping_is_accepted(tmp_path: Path) -> None:
    path = _write(tmp_path / "prefs.yaml", "margin: 10\n")

    assert load_preferences(path).margin == 10


def test_results_are_cached_per_path(tmp_path: Path) -> None:
    path = _write(tmp_path / "prefs.yaml", "default_format: pdf\n")

    first = load_preferences(path)
    path.write_text("default_format: png\n", encoding="utf-8")

    assert load_preferences(path) is first


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    path = _write(tmp_path / "prefs.yaml", "export: [unclosed\n")

    with pytest.raises(PreferencesError):
        load_preferences(path)


def test_invalid_values_raise(tmp_path: Path) -> None:
    path = _write(tmp_path / "prefs.yaml", "paper_size: B5\n")

    with pytest.raises(PreferencesError):
        load_preferences(path)
