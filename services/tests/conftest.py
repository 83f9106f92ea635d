"""Pytest configuration for the services test suite."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest


def _ensure_src_on_path() -> None:
    """Add the services src directory to ``sys.path`` for imports."""

    src_dir = Path(__file__).resolve().parent.parent / "src"
    src_path = str(src_dir)
    if src_dir.is_dir() and src_path not in sys.path:
        sys.path.insert(0, src_path)


_ensure_src_on_path()

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from diagramforge.services import metrics  # noqa: E402
from diagramforge.services.config import ServiceSettings  # noqa: E402
from diagramforge.services.export_service import DiagramExportService  # noqa: E402
from diagramforge.services.preferences import clear_preferences_cache  # noqa: E402

SIMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="800" height="600" viewBox="0 0 800 600">'
    '<rect x="100" y="100" width="200" height="120" fill="#3366cc"/>'
    '<text x="200" y="170" font-size="20" text-anchor="middle">Start</text>'
    "</svg>"
)

STYLED_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="400" height="300">'
    "<style>.node rect { fill: #ececff; stroke: #9370db; } #title { font-size: 24px; }</style>"
    '<g class="node" font-family="Arial" data-id="n1">'
    '<rect width="100" height="40"/>'
    '<text id="title" x="10" y="30" style="fill: #333333">Label</text>'
    "</g>"
    "<g/>"
    "</svg>"
)


@pytest.fixture()
def simple_svg() -> str:
    return SIMPLE_SVG


@pytest.fixture()
def styled_svg() -> str:
    return STYLED_SVG


@pytest.fixture(autouse=True)
def _reset_shared_state() -> Iterator[None]:
    metrics.reset()
    clear_preferences_cache()
    yield
    clear_preferences_cache()


@pytest.fixture()
def service_settings() -> ServiceSettings:
    return ServiceSettings()


@pytest.fixture()
def export_service(service_settings: ServiceSettings) -> DiagramExportService:
    return DiagramExportService(settings=service_settings)


@pytest.fixture()
def service_app(service_settings: ServiceSettings) -> Iterator[FastAPI]:
    """Provide the FastAPI application with default settings."""

    from diagramforge.services.app import create_app

    app = create_app(service_settings)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def test_client(service_app: FastAPI) -> Iterator[TestClient]:
    """Yield a test client bound to the shared FastAPI application."""

    with TestClient(service_app) as client:
        client.app = service_app  # type: ignore[attr-defined]
        yield client
