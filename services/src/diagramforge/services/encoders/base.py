"""Encoder contract, registry and artifact helpers."""

from __future__ import annotations

import base64
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Iterable

from ..models.options import ExportMetadata, ExportOptions, normalise_format
from ..service_errors import UnsupportedFormatError

if TYPE_CHECKING:
    from ..normalizer import NormalizedDocument


@dataclass(frozen=True)
class EncodedArtifact:
    """Bytes produced by an encoder plus their textual data URI."""

    payload: bytes
    mime_type: str
    width: float
    height: float
    data_url: str

    @property
    def size(self) -> int:
        return len(self.payload)


class Encoder(ABC):
    """Stateless converter from a normalized document to one output format."""

    format: ClassVar[str]
    mime_type: ClassVar[str]
    supports_alpha: ClassVar[bool] = False

    @property
    def extension(self) -> str:
        return self.format

    @abstractmethod
    async def encode(
        self,
        document: "NormalizedDocument",
        options: ExportOptions,
        metadata: ExportMetadata,
    ) -> EncodedArtifact:
        """Encode ``document``; raise an :class:`EncodingError` subclass on failure."""


class EncoderRegistry:
    """Lookup of encoders keyed by canonical format tag."""

    def __init__(self, encoders: Iterable[Encoder] = ()) -> None:
        self._encoders: dict[str, Encoder] = {}
        for encoder in encoders:
            self.register(encoder)

    def register(self, encoder: Encoder) -> None:
        self._encoders[normalise_format(encoder.format)] = encoder

    def supports(self, fmt: str) -> bool:
        return normalise_format(fmt) in self._encoders

    def get(self, fmt: str) -> Encoder:
        tag = normalise_format(fmt)
        try:
            return self._encoders[tag]
        except KeyError:
            raise UnsupportedFormatError(
                f"Unsupported export format: {fmt}",
                {"format": fmt, "supported": self.formats()},
            ) from None

    def supports_alpha(self, fmt: str) -> bool:
        encoder = self._encoders.get(normalise_format(fmt))
        return bool(encoder and encoder.supports_alpha)

    def formats(self) -> list[str]:
        return list(self._encoders)

    def describe(self) -> list[dict[str, object]]:
        return [
            {
                "format": tag,
                "mime_type": encoder.mime_type,
                "extension": encoder.extension,
                "supports_alpha": encoder.supports_alpha,
            }
            for tag, encoder in self._encoders.items()
        ]


def filename_for(filename: str, fmt: str) -> str:
    """Replace any extension on ``filename`` with the one for ``fmt``."""

    name = filename.strip()
    stem, _ = os.path.splitext(name)
    return f"{stem or name}.{normalise_format(fmt)}"


def base64_data_url(payload: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


__all__ = [
    "EncodedArtifact",
    "Encoder",
    "EncoderRegistry",
    "base64_data_url",
    "filename_for",
]
