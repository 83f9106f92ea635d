"""Tests for document normalization."""

from __future__ import annotations

from diagramforge.services.models.options import ExportOptions
from diagramforge.services.normalizer import normalize_document, sanitize_document
from diagramforge.services.svg_document import XLINK_HREF, local_name, parse_svg, svg_tag


def _children(root) -> list[str]:
    return [local_name(child.tag) for child in root]


def test_styles_are_inlined_and_residue_removed(styled_svg: str) -> None:
    document = normalize_document(styled_svg, ExportOptions())

    assert document.styles_inlined is True
    assert (document.width, document.height) == (400, 300)
    assert _children(document.root) == ["style", "g"]

    group = document.root.find(svg_tag("g"))
    assert group is not None
    assert group.get("class") is None
    assert group.get("data-id") is None

    rect = group.find(svg_tag("rect"))
    assert rect is not None
    assert rect.get("fill") == "#ececff"
    assert rect.get("stroke") == "#9370db"
    assert rect.get("font-family") == "Arial"

    title = group.find(svg_tag("text"))
    assert title is not None
    assert title.get("font-size") == "24px"
    assert title.get("fill") == "#333333"


def test_classes_survive_when_styles_are_not_inlined(styled_svg: str) -> None:
    document = normalize_document(styled_svg, ExportOptions(embed_svg_fonts=False))

    group = document.root.find(svg_tag("g"))
    assert document.styles_inlined is False
    assert group is not None
    assert group.get("class") == "node"
    assert group.get("data-id") is None


def test_optimization_can_be_disabled(styled_svg: str) -> None:
    document = normalize_document(styled_svg, ExportOptions(optimize_svg=False))

    assert _children(document.root) == ["style", "g", "g"]
    assert document.root.find(svg_tag("g")).get("data-id") == "n1"


def test_nested_empty_containers_are_pruned() -> None:
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10">'
        "<defs><g><g/></g></defs><rect width='1' height='1'/></svg>"
    )

    document = normalize_document(svg, ExportOptions())

    assert _children(document.root) == ["rect"]


def test_editor_namespaces_are_removed() -> None:
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" '
        'xmlns:inkscape="http://www.inkscape.org/namespaces/inkscape" '
        'xmlns:sodipodi="http://sodipodi.sourceforge.net/DTD/sodipodi-0.dtd" width="10" height="10">'
        '<sodipodi:namedview id="base"/>'
        '<rect inkscape:label="box" width="1" height="1"/></svg>'
    )

    document = normalize_document(svg, ExportOptions())

    assert _children(document.root) == ["rect"]
    assert "inkscape" not in document.to_text()


def test_explicit_dimensions_override_document_size(simple_svg: str) -> None:
    options = ExportOptions(dimensions={"width": 1024, "height": 768})

    document = normalize_document(simple_svg, options)

    assert (document.width, document.height) == (1024, 768)
    assert document.root.get("width") == "1024"
    assert document.root.get("viewBox") == "0 0 1024 768"


def test_sanitize_removes_active_content() -> None:
    root = parse_svg(
        '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink">'
        "<script>alert(1)</script>"
        '<rect onclick="steal()" width="1"/>'
        '<a xlink:href=" JavaScript:alert(1)"><text>t</text></a>'
        '<a href="https://example.com"><text>ok</text></a>'
        "</svg>"
    )

    removed = sanitize_document(root)

    assert removed == 3
    assert root.find(svg_tag("script")) is None
    assert root.find(svg_tag("rect")).get("onclick") is None
    links = root.findall(svg_tag("a"))
    assert links[0].get(XLINK_HREF) is None
    assert links[1].get("href") == "https://example.com"
