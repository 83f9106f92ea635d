"""Tests for the bitmap encoders."""

from __future__ import annotations

import asyncio
import base64
import io

import pytest
from PIL import Image

from diagramforge.services.encoders.raster import (
    JpegEncoder,
    PngEncoder,
    WebpEncoder,
    background_rgba,
    rasterize,
    surface_size,
)
from diagramforge.services.models.options import BackgroundSettings, ExportMetadata, ExportOptions
from diagramforge.services.normalizer import normalize_document
from diagramforge.services.service_errors import DimensionLimitError, RasterTaintError

TAINTED_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">'
    '<image href="https://cdn.example.com/logo.png" width="50" height="50"/>'
    "</svg>"
)


def _encode(encoder, svg_text: str, **option_overrides: object):
    options = ExportOptions.model_validate({"format": encoder.format, **option_overrides})
    document = normalize_document(svg_text, options)
    return asyncio.run(encoder.encode(document, options, ExportMetadata()))


def test_background_rgba_modes() -> None:
    assert background_rgba(BackgroundSettings(mode="transparent")) is None
    assert background_rgba(BackgroundSettings(mode="white")) == (255, 255, 255, 255)
    assert background_rgba(BackgroundSettings(mode="black", opacity=0.0)) == (0, 0, 0, 0)
    assert background_rgba(BackgroundSettings(mode="custom", color="#ff0000", opacity=0.5)) == (255, 0, 0, 128)
    assert background_rgba(BackgroundSettings(mode="theme", color="navy")) == (0, 0, 128, 255)


def test_surface_size_never_collapses_to_zero() -> None:
    assert surface_size(800, 600, 2.0) == (1600, 1200)
    assert surface_size(3, 3, 0.1) == (1, 1)


def test_png_output_is_scaled_and_opaque(simple_svg: str) -> None:
    artifact = _encode(PngEncoder(), simple_svg, quality={"scale": 2.0, "dpi": 300})

    image = Image.open(io.BytesIO(artifact.payload))
    assert image.format == "PNG"
    assert image.size == (1600, 1200)
    assert (artifact.width, artifact.height) == (1600, 1200)
    assert image.convert("RGBA").getpixel((0, 0)) == (255, 255, 255, 255)
    assert image.info["dpi"][0] == pytest.approx(300, abs=1)
    assert artifact.data_url.startswith("data:image/png;base64,")
    assert base64.b64decode(artifact.data_url.split(",", 1)[1]) == artifact.payload


def test_png_keeps_transparency(simple_svg: str) -> None:
    artifact = _encode(PngEncoder(), simple_svg, quality={"scale": 0.5}, background={"mode": "transparent"})

    image = Image.open(io.BytesIO(artifact.payload)).convert("RGBA")
    assert image.size == (400, 300)
    assert image.getpixel((0, 0))[3] == 0
    # Inside the filled rectangle.
    assert image.getpixel((100, 80))[3] == 255


def test_disabling_antialiasing_removes_partial_alpha(simple_svg: str) -> None:
    options = ExportOptions(quality={"scale": 0.5, "antialiasing": False}, background={"mode": "transparent"})
    document = normalize_document(simple_svg, options)

    image = rasterize(document, 400, 300, background=options.background, antialiasing=False)

    assert set(image.getchannel("A").getdata()) <= {0, 255}


def test_jpeg_is_flattened(simple_svg: str) -> None:
    artifact = _encode(JpegEncoder(), simple_svg, quality={"scale": 1.0, "compression": 0.8})

    image = Image.open(io.BytesIO(artifact.payload))
    assert artifact.mime_type == "image/jpeg"
    assert image.format == "JPEG"
    assert image.mode == "RGB"
    assert all(channel > 245 for channel in image.getpixel((5, 5)))


def test_webp_output(simple_svg: str) -> None:
    artifact = _encode(WebpEncoder(), simple_svg, quality={"scale": 1.0})

    image = Image.open(io.BytesIO(artifact.payload))
    assert image.format == "WEBP"
    assert image.size == (800, 600)


def test_external_references_taint_the_canvas() -> None:
    with pytest.raises(RasterTaintError) as excinfo:
        _encode(PngEncoder(), TAINTED_SVG)

    assert excinfo.value.message == "Canvas tainted - cannot export. Try exporting as SVG instead."
    assert excinfo.value.details["references"] == ["https://cdn.example.com/logo.png"]


def test_oversized_surface_is_refused(simple_svg: str) -> None:
    options = ExportOptions()
    document = normalize_document(simple_svg, options)

    with pytest.raises(DimensionLimitError):
        rasterize(document, 40000, 10, background=options.background)
