"""Produce a self-contained, export-ready copy of a vector document."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from .models.options import ExportOptions
from .styles import inline_effective_styles
from .svg_document import (
    XLINK_HREF,
    document_dimensions,
    local_name,
    parse_svg,
    serialize_svg,
    set_dimensions,
)

LOGGER = logging.getLogger(__name__)

EDITOR_NAMESPACES: tuple[str, ...] = (
    "http://www.inkscape.org/namespaces/inkscape",
    "http://sodipodi.sourceforge.net/DTD/sodipodi-0.dtd",
)
_PRUNABLE_CONTAINERS = frozenset({"g", "defs"})


@dataclass
class NormalizedDocument:
    """Parsed export copy together with its resolved size in CSS pixels."""

    root: ET.Element
    width: float
    height: float
    styles_inlined: bool = False

    def to_text(self) -> str:
        return serialize_svg(self.root)


def _attribute_namespace(name: str) -> str | None:
    if name.startswith("{"):
        return name[1:].split("}", 1)[0]
    return None


def sanitize_document(root: ET.Element) -> int:
    """Remove scripts, event handler attributes and ``javascript:`` links."""

    removed = 0
    for parent in list(root.iter()):
        for child in list(parent):
            if local_name(child.tag) == "script":
                parent.remove(child)
                removed += 1

    for element in root.iter():
        for name in list(element.attrib):
            value = element.attrib[name]
            bare = local_name(name).lower()
            if bare.startswith("on"):
                del element.attrib[name]
                removed += 1
            elif name in ("href", XLINK_HREF) and value.strip().lower().startswith("javascript:"):
                del element.attrib[name]
                removed += 1
    return removed


def optimize_document(root: ET.Element, *, strip_classes: bool) -> None:
    """Drop editor residue, data attributes and empty containers."""

    for parent in list(root.iter()):
        for child in list(parent):
            if _attribute_namespace(child.tag if isinstance(child.tag, str) else "") in EDITOR_NAMESPACES:
                parent.remove(child)

    for element in root.iter():
        for name in list(element.attrib):
            if name.startswith("data-") or _attribute_namespace(name) in EDITOR_NAMESPACES:
                del element.attrib[name]
            elif strip_classes and name == "class":
                del element.attrib[name]

    # Removing a container can leave its parent empty, so repeat until stable.
    changed = True
    while changed:
        changed = False
        for parent in list(root.iter()):
            for child in list(parent):
                if (
                    local_name(child.tag) in _PRUNABLE_CONTAINERS
                    and len(child) == 0
                    and not (child.text or "").strip()
                ):
                    parent.remove(child)
                    changed = True


def normalize_document(svg_text: str, options: ExportOptions) -> NormalizedDocument:
    """Parse ``svg_text`` and apply the normalization steps ``options`` request."""

    root = parse_svg(svg_text)
    scrubbed = sanitize_document(root)

    styles_inlined = False
    if options.embed_svg_fonts:
        inline_effective_styles(root)
        styles_inlined = True

    if options.optimize_svg:
        optimize_document(root, strip_classes=styles_inlined)

    if options.dimensions is not None:
        width, height = options.dimensions.width, options.dimensions.height
        set_dimensions(root, width, height)
    else:
        width, height = document_dimensions(root)

    LOGGER.debug(
        "normalizer.completed",
        extra={
            "extra_payload": {
                "width": width,
                "height": height,
                "styles_inlined": styles_inlined,
                "sanitized": scrubbed,
            }
        },
    )
    return NormalizedDocument(root=root, width=width, height=height, styles_inlined=styles_inlined)


__all__ = [
    "EDITOR_NAMESPACES",
    "NormalizedDocument",
    "normalize_document",
    "optimize_document",
    "sanitize_document",
]
