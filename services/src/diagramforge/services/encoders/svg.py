"""Lossless vector passthrough encoder."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from urllib.parse import quote

from ..constants import MIME_TYPES
from ..models.options import ExportMetadata, ExportOptions
from ..normalizer import NormalizedDocument
from .base import EncodedArtifact, Encoder

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def _comment(label: str, value: str) -> str:
    # "--" is not allowed inside XML comments.
    safe = re.sub(r"-(?=-)", "- ", value)
    return f"<!-- {label}: {safe} -->"


def metadata_comments(metadata: ExportMetadata, *, generated: datetime | None = None) -> list[str]:
    comments: list[str] = []
    if metadata.title:
        comments.append(_comment("Title", metadata.title))
    if metadata.author:
        comments.append(_comment("Author", metadata.author))
    if metadata.subject:
        comments.append(_comment("Subject", metadata.subject))
    if metadata.keywords:
        comments.append(_comment("Keywords", ", ".join(metadata.keywords)))
    stamp = generated or datetime.now(timezone.utc)
    comments.append(_comment("Generated", stamp.isoformat()))
    return comments


def svg_data_url(svg_text: str) -> str:
    return "data:image/svg+xml;charset=utf-8," + quote(svg_text, safe="!~*'()")


class SvgEncoder(Encoder):
    format = "svg"
    mime_type = MIME_TYPES["svg"]
    supports_alpha = True

    async def encode(
        self,
        document: NormalizedDocument,
        options: ExportOptions,
        metadata: ExportMetadata,
    ) -> EncodedArtifact:
        lines = [XML_DECLARATION]
        lines.extend(metadata_comments(metadata, generated=metadata.creation_date))
        lines.append(document.to_text())
        text = "\n".join(lines)
        return EncodedArtifact(
            payload=text.encode("utf-8"),
            mime_type=self.mime_type,
            width=document.width,
            height=document.height,
            data_url=svg_data_url(text),
        )


__all__ = ["SvgEncoder", "metadata_comments", "svg_data_url"]
