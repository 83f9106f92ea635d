"""Map exceptions raised during an export onto user-actionable errors."""

from __future__ import annotations

import asyncio
import xml.etree.ElementTree as ET

from PIL import Image

from .models.results import ExportError
from .service_errors import (
    DEFAULT_ERROR_DEFINITION,
    ErrorDefinition,
    ExportServiceError,
    get_error_definition,
)

MAX_SUGGESTIONS = 3

# Checked in order against the lower-cased exception message.
_KEYWORD_CATEGORIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("canvas", "raster", "cairo"), "RASTERIZATION_FAILED"),
    (("svg", "parse", "xml"), "VECTOR_PARSE_FAILED"),
    (("dimension", "too large"), "DIMENSION_LIMIT"),
    (("timeout", "timed out"), "EXPORT_TIMEOUT"),
    (("network",), "NETWORK_FAILED"),
)


def _categorise(exc: BaseException) -> str:
    if isinstance(exc, ET.ParseError):
        return "VECTOR_PARSE_FAILED"
    if isinstance(exc, (Image.DecompressionBombError, MemoryError)):
        return "DIMENSION_LIMIT"
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return "EXPORT_TIMEOUT"
    if isinstance(exc, ConnectionError):
        return "NETWORK_FAILED"

    message = str(exc).lower()
    for keywords, code in _KEYWORD_CATEGORIES:
        if any(keyword in message for keyword in keywords):
            return code
    return DEFAULT_ERROR_DEFINITION.code


def _cause_text(exc: BaseException) -> str:
    root = exc.__cause__ or exc
    text = str(root)
    name = type(root).__name__
    return f"{name}: {text}" if text else name


def _suggestions(definition: ErrorDefinition) -> list[str]:
    suggestions = list(definition.suggestions[:MAX_SUGGESTIONS])
    return suggestions or list(DEFAULT_ERROR_DEFINITION.suggestions[:MAX_SUGGESTIONS])


def classify_error(exc: BaseException) -> ExportError:
    """Return the :class:`ExportError` describing ``exc``."""

    if isinstance(exc, ExportServiceError):
        definition = exc.definition
        return ExportError(
            code=definition.code,
            message=exc.message or definition.message,
            cause=_cause_text(exc),
            details=dict(exc.details),
            recoverable=definition.recoverable,
            suggestions=_suggestions(definition),
        )

    definition = get_error_definition(_categorise(exc))
    return ExportError(
        code=definition.code,
        message=str(exc) or definition.message,
        cause=_cause_text(exc),
        details={"exception": type(exc).__name__},
        recoverable=definition.recoverable,
        suggestions=_suggestions(definition),
    )


__all__ = ["MAX_SUGGESTIONS", "classify_error"]
