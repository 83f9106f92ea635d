"""Advisory cancellation shared between a caller and a running export."""

from __future__ import annotations

import threading

from .service_errors import ExportCancelledError


class CancellationToken:
    """Flag checked by the pipeline at stage boundaries.

    Cancelling never interrupts an encoder that is already running.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise ExportCancelledError(
                "Export was cancelled",
                {"stage": stage, "reason": self._reason},
            )


__all__ = ["CancellationToken"]
