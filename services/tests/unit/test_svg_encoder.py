"""Tests for the SVG passthrough encoder."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import xml.etree.ElementTree as ET
from urllib.parse import unquote

from diagramforge.services.encoders.svg import SvgEncoder, metadata_comments, svg_data_url
from diagramforge.services.models.options import ExportMetadata, ExportOptions
from diagramforge.services.normalizer import normalize_document

STAMP = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def test_metadata_comments_are_escaped() -> None:
    metadata = ExportMetadata(title="Flow -- v2", author="Ada", keywords="flow, chart")

    comments = metadata_comments(metadata, generated=STAMP)

    assert comments == [
        "<!-- Title: Flow - - v2 -->",
        "<!-- Author: Ada -->",
        "<!-- Keywords: flow, chart -->",
        "<!-- Generated: 2024-05-01T12:30:00+00:00 -->",
    ]


def test_data_url_round_trips_through_percent_decoding() -> None:
    text = '<svg xmlns="http://www.w3.org/2000/svg"><text>a & b #1</text></svg>'

    url = svg_data_url(text)

    assert url.startswith("data:image/svg+xml;charset=utf-8,")
    assert "#" not in url
    assert unquote(url.split(",", 1)[1]) == text


def test_encode_prepends_declaration_and_metadata(simple_svg: str) -> None:
    options = ExportOptions()
    document = normalize_document(simple_svg, options)
    metadata = ExportMetadata(title="Pipeline", creation_date=STAMP)

    artifact = asyncio.run(SvgEncoder().encode(document, options, metadata))

    text = artifact.payload.decode("utf-8")
    lines = text.split("\n")
    assert lines[0] == '<?xml version="1.0" encoding="UTF-8"?>'
    assert lines[1] == "<!-- Title: Pipeline -->"
    assert lines[2] == "<!-- Generated: 2024-05-01T12:30:00+00:00 -->"
    assert lines[3].startswith("<svg")
    assert "Start" in text
    assert artifact.mime_type == "image/svg+xml"
    assert (artifact.width, artifact.height) == (800, 600)
    assert artifact.size == len(artifact.payload)


def test_background_is_not_painted_into_vectors(simple_svg: str) -> None:
    options = ExportOptions(background={"mode": "black"})
    document = normalize_document(simple_svg, options)

    artifact = asyncio.run(SvgEncoder().encode(document, options, ExportMetadata()))

    assert b"#000000" not in artifact.payload


def test_dash_runs_in_metadata_keep_the_payload_well_formed(simple_svg: str) -> None:
    options = ExportOptions()
    document = normalize_document(simple_svg, options)
    metadata = ExportMetadata(title="a---b", author="trailing-", creation_date=STAMP)

    artifact = asyncio.run(SvgEncoder().encode(document, options, metadata))

    text = artifact.payload.decode("utf-8")
    assert "<!-- Title: a- - -b -->" in text
    for line in text.split("\n")[1:3]:
        assert "--" not in line[4:-3]
    assert ET.fromstring(artifact.payload).get("width") == "800"
