"""Parsing and inspection helpers for serialized SVG documents."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Iterator

from .constants import FALLBACK_HEIGHT, FALLBACK_WIDTH, SVG_NAMESPACE, XLINK_NAMESPACE
from .service_errors import VectorParseError

ET.register_namespace("", SVG_NAMESPACE)
ET.register_namespace("xlink", XLINK_NAMESPACE)

XLINK_HREF = f"{{{XLINK_NAMESPACE}}}href"

_LENGTH_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([a-zA-Z%]*)\s*$")
_UNIT_TO_PX = {
    "": 1.0,
    "px": 1.0,
    "pt": 96.0 / 72.0,
    "pc": 16.0,
    "in": 96.0,
    "cm": 96.0 / 2.54,
    "mm": 96.0 / 25.4,
    "em": 16.0,
}
_CSS_URL_RE = re.compile(r"url\(\s*['\"]?([^'\")]+)['\"]?\s*\)", re.IGNORECASE)
_CSS_IMPORT_RE = re.compile(r"@import\s+['\"]([^'\"]+)['\"]", re.IGNORECASE)
_EXTERNAL_PREFIXES = ("http:", "https:", "//", "file:", "ftp:")


def local_name(tag: object) -> str:
    """Return ``tag`` without its ``{namespace}`` prefix."""

    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def svg_tag(name: str) -> str:
    return f"{{{SVG_NAMESPACE}}}{name}"


def parse_svg(svg_text: str) -> ET.Element:
    """Parse ``svg_text`` into an element tree rooted at ``<svg>``.

    Documents without the SVG namespace are lifted into it so the rest of the
    pipeline only ever sees qualified element names.
    """

    try:
        root = ET.fromstring(svg_text)
    except ET.ParseError as exc:
        raise VectorParseError(f"Invalid SVG content: {exc}", {"position": list(exc.position)}) from exc

    if local_name(root.tag) != "svg":
        raise VectorParseError(
            "Document root must be an <svg> element.",
            {"root": local_name(root.tag)},
        )

    if not root.tag.startswith("{"):
        for element in root.iter():
            if isinstance(element.tag, str) and not element.tag.startswith("{"):
                element.tag = svg_tag(element.tag)
    return root


def serialize_svg(root: ET.Element) -> str:
    """Serialize ``root`` with the SVG namespace as the default namespace."""

    return ET.tostring(root, encoding="unicode")


def parse_length(value: str | None) -> float | None:
    """Convert an SVG length to CSS pixels; percentages yield ``None``."""

    if value is None:
        return None
    match = _LENGTH_RE.match(value)
    if not match:
        return None
    number, unit = match.groups()
    factor = _UNIT_TO_PX.get(unit.lower())
    if factor is None:
        return None
    return float(number) * factor


def parse_view_box(value: str | None) -> tuple[float, float, float, float] | None:
    if not value:
        return None
    parts = [part for part in re.split(r"[\s,]+", value.strip()) if part]
    if len(parts) != 4:
        return None
    try:
        x, y, width, height = (float(part) for part in parts)
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return x, y, width, height


def document_dimensions(root: ET.Element) -> tuple[float, float]:
    """Return the document's ``(width, height)`` in CSS pixels."""

    view_box = parse_view_box(root.get("viewBox"))
    width = parse_length(root.get("width"))
    height = parse_length(root.get("height"))

    if width is None or width <= 0:
        width = view_box[2] if view_box else FALLBACK_WIDTH
    if height is None or height <= 0:
        height = view_box[3] if view_box else FALLBACK_HEIGHT
    return width, height


def set_dimensions(root: ET.Element, width: float, height: float) -> None:
    root.set("width", _format_number(width))
    root.set("height", _format_number(height))
    root.set("viewBox", f"0 0 {_format_number(width)} {_format_number(height)}")


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.3f}".rstrip("0").rstrip(".")


def is_external_reference(reference: str) -> bool:
    return reference.strip().lower().startswith(_EXTERNAL_PREFIXES)


def iter_references(root: ET.Element) -> Iterator[str]:
    """Yield every href and CSS ``url()``/``@import`` target in the document."""

    for element in root.iter():
        for key in ("href", XLINK_HREF):
            value = element.get(key)
            if value:
                yield value
        style = element.get("style")
        if style:
            yield from _CSS_URL_RE.findall(style)
        if local_name(element.tag) == "style" and element.text:
            yield from _CSS_URL_RE.findall(element.text)
            yield from _CSS_IMPORT_RE.findall(element.text)


def external_references(root: ET.Element) -> list[str]:
    """Return the references that point outside the document."""

    return sorted({ref for ref in iter_references(root) if is_external_reference(ref)})


__all__ = [
    "XLINK_HREF",
    "document_dimensions",
    "external_references",
    "is_external_reference",
    "iter_references",
    "local_name",
    "parse_length",
    "parse_svg",
    "parse_view_box",
    "serialize_svg",
    "set_dimensions",
    "svg_tag",
]
