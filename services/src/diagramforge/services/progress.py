"""Staged progress reporting for export invocations."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .models.progress import ExportProgress, ProgressStage

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[ExportProgress], None]

STAGE_PROGRESS: dict[str, float] = {
    "preparing": 0.0,
    "rendering": 20.0,
    "processing": 50.0,
    "finalizing": 90.0,
    "complete": 100.0,
    "error": 0.0,
}
STAGE_ORDER: tuple[str, ...] = ("preparing", "rendering", "processing", "finalizing", "complete")
TERMINAL_STAGES = frozenset({"complete", "error"})


class ProgressChannel:
    """Fan-out of progress updates to subscribers.

    Subscription changes and publishing may happen from different threads.
    A subscriber that raises is logged and skipped; the others still run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[int, ProgressCallback] = {}
        self._next_token = 0

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, update: ExportProgress) -> None:
        with self._lock:
            callbacks = list(self._subscribers.values())
        for callback in callbacks:
            try:
                callback(update)
            except Exception as exc:  # noqa: BLE001 - subscriber faults must not break exports
                LOGGER.warning(
                    "progress.subscriber_failed",
                    extra={"extra_payload": {"stage": update.stage, "error": str(exc)}},
                )


class ProgressTracker:
    """Per-invocation stage machine feeding a :class:`ProgressChannel`."""

    def __init__(
        self,
        channel: ProgressChannel | None = None,
        *,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._channel = channel
        self._clock = clock
        self._started = clock()
        self._stage: str | None = None
        self.history: list[ExportProgress] = []

    @property
    def stage(self) -> str | None:
        return self._stage

    @property
    def elapsed(self) -> float:
        return max(0.0, self._clock() - self._started)

    def _emit(self, stage: ProgressStage, message: str) -> ExportProgress:
        progress = STAGE_PROGRESS[stage]
        elapsed = self.elapsed
        remaining: float | None = None
        if stage == "complete":
            remaining = 0.0
        elif stage != "error" and progress > 0:
            remaining = elapsed * (100.0 - progress) / progress
        update = ExportProgress(
            stage=stage,
            progress=progress,
            message=message,
            time_elapsed=elapsed,
            estimated_time_remaining=remaining,
        )
        self._stage = stage
        self.history.append(update)
        if self._channel is not None:
            self._channel.publish(update)
        return update

    def advance(self, stage: ProgressStage, message: str) -> ExportProgress:
        """Move forward to ``stage``; backwards or post-terminal moves raise."""

        if stage == "error":
            return self.fail(message)
        if stage not in STAGE_ORDER:
            raise RuntimeError(f"Unknown progress stage: {stage}")
        if self._stage in TERMINAL_STAGES:
            raise RuntimeError(f"Cannot enter '{stage}' after terminal stage '{self._stage}'")
        if self._stage is None and stage != "preparing":
            raise RuntimeError(f"Progress must start with 'preparing', not '{stage}'")
        if self._stage is not None and STAGE_ORDER.index(stage) <= STAGE_ORDER.index(self._stage):
            raise RuntimeError(f"Cannot move from '{self._stage}' back to '{stage}'")
        return self._emit(stage, message)

    def fail(self, message: str) -> ExportProgress:
        if self._stage in TERMINAL_STAGES:
            raise RuntimeError(f"Cannot report an error after terminal stage '{self._stage}'")
        return self._emit("error", message)


__all__ = [
    "ProgressCallback",
    "ProgressChannel",
    "ProgressTracker",
    "STAGE_ORDER",
    "STAGE_PROGRESS",
]
