"""Effective presentation style resolution for SVG elements.

Implements the subset of the CSS cascade that diagram renderers emit:
``<style>`` blocks with type/class/id/universal compound selectors joined by
descendant or child combinators, presentation attributes, inline ``style``
declarations and inheritance of text and paint properties.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterator

from .constants import SVG_NAMESPACE
from .svg_document import local_name

EXPORTED_PROPERTIES: tuple[str, ...] = (
    "font-family",
    "font-size",
    "font-weight",
    "font-style",
    "fill",
    "stroke",
    "stroke-width",
    "stroke-dasharray",
    "opacity",
    "transform",
    "text-anchor",
    "dominant-baseline",
)
NON_INHERITED: frozenset[str] = frozenset({"opacity", "transform"})
SKIPPED_ELEMENTS: frozenset[str] = frozenset({"style", "script", "title", "desc", "metadata"})

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_COMPOUND_RE = re.compile(r"^(\*|[A-Za-z][\w-]*)?((?:[#.][\w-]+)*)$")
_PX_IN_TRANSFORM_RE = re.compile(r"(\d)(?:px|deg)\b")


@dataclass(frozen=True)
class Compound:
    tag: str | None
    element_id: str | None
    classes: frozenset[str]

    def matches(self, element: ET.Element) -> bool:
        if self.tag is not None and self.tag != local_name(element.tag):
            return False
        if self.element_id is not None and element.get("id") != self.element_id:
            return False
        if self.classes:
            present = set((element.get("class") or "").split())
            if not self.classes.issubset(present):
                return False
        return True


@dataclass(frozen=True)
class Selector:
    # Right-most compound first; each entry pairs a compound with the
    # combinator linking it to the compound on its right.
    parts: tuple[tuple[Compound, str], ...]
    specificity: tuple[int, int, int]


@dataclass
class StyleRule:
    selector: Selector
    declarations: dict[str, str]
    important: frozenset[str]
    order: int


@dataclass
class StyleSheet:
    rules: list[StyleRule] = field(default_factory=list)

    def matching(self, element: ET.Element, parents: dict[ET.Element, ET.Element]) -> list[StyleRule]:
        hits = [rule for rule in self.rules if _selector_matches(rule.selector, element, parents)]
        return sorted(hits, key=lambda rule: (rule.selector.specificity, rule.order))


def parse_declarations(text: str) -> tuple[dict[str, str], frozenset[str]]:
    """Parse ``prop: value`` pairs; returns values and the ``!important`` set."""

    values: dict[str, str] = {}
    important: set[str] = set()
    for chunk in _COMMENT_RE.sub("", text).split(";"):
        if ":" not in chunk:
            continue
        name, value = chunk.split(":", 1)
        name = name.strip().lower()
        value = value.strip()
        if not name or not value:
            continue
        if value.lower().endswith("!important"):
            value = value[: -len("!important")].strip()
            important.add(name)
        values[name] = value
    return values, frozenset(important)


def _parse_compound(token: str) -> Compound | None:
    match = _COMPOUND_RE.match(token)
    if not match:
        return None
    tag, qualifiers = match.groups()
    element_id: str | None = None
    classes: set[str] = set()
    for qualifier in re.findall(r"[#.][\w-]+", qualifiers or ""):
        if qualifier.startswith("#"):
            element_id = qualifier[1:]
        else:
            classes.add(qualifier[1:])
    return Compound(tag=None if tag in (None, "*") else tag, element_id=element_id, classes=frozenset(classes))


def parse_selector(text: str) -> Selector | None:
    """Parse a selector; unsupported syntax (pseudo classes, attributes) yields ``None``."""

    tokens = re.sub(r"\s*>\s*", " > ", text.strip()).split()
    if not tokens:
        return None

    parts: list[tuple[Compound, str]] = []
    combinator = ""
    ids = classes = tags = 0
    for token in reversed(tokens):
        if token == ">":
            combinator = ">"
            continue
        compound = _parse_compound(token)
        if compound is None:
            return None
        parts.append((compound, combinator))
        combinator = " "
        ids += 1 if compound.element_id else 0
        classes += len(compound.classes)
        tags += 1 if compound.tag else 0
    return Selector(parts=tuple(parts), specificity=(ids, classes, tags))


def _iter_blocks(css: str) -> Iterator[tuple[str, str]]:
    """Yield ``(prelude, body)`` pairs for top level and nested blocks."""

    depth = 0
    start = 0
    prelude = ""
    for index, char in enumerate(css):
        if char == "{":
            if depth == 0:
                prelude = css[start:index].strip()
                start = index + 1
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                body = css[start:index]
                start = index + 1
                if prelude.startswith("@media") or prelude.startswith("@supports"):
                    yield from _iter_blocks(body)
                elif not prelude.startswith("@"):
                    yield prelude, body
            depth = max(depth, 0)


def parse_stylesheet(css: str, *, order_offset: int = 0) -> StyleSheet:
    sheet = StyleSheet()
    order = order_offset
    for prelude, body in _iter_blocks(_COMMENT_RE.sub("", css)):
        declarations, important = parse_declarations(body)
        if not declarations:
            continue
        for selector_text in prelude.split(","):
            selector = parse_selector(selector_text)
            if selector is None:
                continue
            sheet.rules.append(StyleRule(selector, declarations, important, order))
            order += 1
    return sheet


def collect_stylesheet(root: ET.Element) -> StyleSheet:
    """Gather every ``<style>`` element of the document into one sheet."""

    combined = StyleSheet()
    for element in root.iter():
        if local_name(element.tag) == "style" and element.text:
            parsed = parse_stylesheet(element.text, order_offset=len(combined.rules))
            combined.rules.extend(parsed.rules)
    return combined


def _selector_matches(selector: Selector, element: ET.Element, parents: dict[ET.Element, ET.Element]) -> bool:
    first, _ = selector.parts[0]
    if not first.matches(element):
        return False
    return _match_ancestors(selector.parts, 1, element, parents)


def _match_ancestors(
    parts: tuple[tuple[Compound, str], ...],
    index: int,
    element: ET.Element,
    parents: dict[ET.Element, ET.Element],
) -> bool:
    if index >= len(parts):
        return True
    compound, combinator = parts[index]
    ancestor = parents.get(element)
    while ancestor is not None:
        if compound.matches(ancestor) and _match_ancestors(parts, index + 1, ancestor, parents):
            return True
        if combinator == ">":
            return False
        ancestor = parents.get(ancestor)
    return False


def compute_effective_styles(root: ET.Element) -> dict[ET.Element, dict[str, str]]:
    """Return the effective exported properties for every SVG element."""

    sheet = collect_stylesheet(root)
    parents = {child: parent for parent in root.iter() for child in parent}
    effective: dict[ET.Element, dict[str, str]] = {}

    def visit(element: ET.Element, inherited: dict[str, str]) -> None:
        values = {name: value for name, value in inherited.items() if name not in NON_INHERITED}
        from_css: set[str] = set()

        for name in EXPORTED_PROPERTIES:
            attribute = element.get(name)
            if attribute:
                values[name] = attribute

        important: dict[str, str] = {}
        for rule in sheet.matching(element, parents):
            for name, value in rule.declarations.items():
                if name not in EXPORTED_PROPERTIES:
                    continue
                if name in rule.important:
                    important[name] = value
                else:
                    values[name] = value
                from_css.add(name)

        inline, inline_important = parse_declarations(element.get("style") or "")
        for name, value in inline.items():
            if name in EXPORTED_PROPERTIES and (name not in important or name in inline_important):
                values[name] = value
                from_css.add(name)
        for name, value in important.items():
            if name not in inline_important:
                values[name] = value

        for name, value in list(values.items()):
            if value == "inherit":
                if name in inherited:
                    values[name] = inherited[name]
                else:
                    del values[name]
        if "transform" in values and "transform" in from_css:
            values["transform"] = _PX_IN_TRANSFORM_RE.sub(r"\1", values["transform"])

        effective[element] = values
        for child in element:
            if _is_styled_element(child):
                visit(child, values)

    if _is_styled_element(root):
        visit(root, {})
    return effective


def _is_styled_element(element: ET.Element) -> bool:
    if not isinstance(element.tag, str):
        return False
    if not element.tag.startswith(f"{{{SVG_NAMESPACE}}}"):
        return False
    return local_name(element.tag) not in SKIPPED_ELEMENTS


def inline_effective_styles(root: ET.Element) -> int:
    """Write effective properties as presentation attributes; returns the element count touched."""

    touched = 0
    for element, values in compute_effective_styles(root).items():
        changed = False
        for name, value in values.items():
            if element.get(name) != value:
                element.set(name, value)
                changed = True
        touched += int(changed)
    return touched


__all__ = [
    "EXPORTED_PROPERTIES",
    "StyleSheet",
    "collect_stylesheet",
    "compute_effective_styles",
    "inline_effective_styles",
    "parse_declarations",
    "parse_selector",
    "parse_stylesheet",
]
