"""Tests for staged progress tracking and fan-out."""

from __future__ import annotations

from typing import Callable

import pytest

from diagramforge.services.models.progress import ExportProgress
from diagramforge.services.progress import ProgressChannel, ProgressTracker


def _clock(*ticks: float) -> Callable[[], float]:
    values = iter(ticks)
    return lambda: next(values)


def test_stages_advance_with_fixed_percentages_and_estimates() -> None:
    tracker = ProgressTracker(clock=_clock(0.0, 0.0, 2.0, 5.0, 9.0, 10.0))

    preparing = tracker.advance("preparing", "Preparing export...")
    rendering = tracker.advance("rendering", "Rendering diagram...")
    processing = tracker.advance("processing", "Encoding PNG...")
    finalizing = tracker.advance("finalizing", "Finalizing export...")
    complete = tracker.advance("complete", "Export completed successfully")

    assert [update.progress for update in tracker.history] == [0.0, 20.0, 50.0, 90.0, 100.0]
    assert preparing.estimated_time_remaining is None
    assert rendering.estimated_time_remaining == pytest.approx(8.0)
    assert processing.estimated_time_remaining == pytest.approx(5.0)
    assert finalizing.estimated_time_remaining == pytest.approx(1.0)
    assert complete.estimated_time_remaining == 0.0
    assert complete.time_elapsed == pytest.approx(10.0)
    assert tracker.stage == "complete"


def test_error_reports_zero_progress_without_estimate() -> None:
    tracker = ProgressTracker(clock=_clock(0.0, 1.0, 3.0))
    tracker.advance("preparing", "Preparing export...")

    update = tracker.fail("DPI must be between 72 and 2400")

    assert update.stage == "error"
    assert update.progress == 0.0
    assert update.estimated_time_remaining is None
    assert update.message == "DPI must be between 72 and 2400"


def test_progress_must_start_with_preparing() -> None:
    tracker = ProgressTracker()

    with pytest.raises(RuntimeError):
        tracker.advance("rendering", "Rendering diagram...")


def test_stages_never_move_backwards() -> None:
    tracker = ProgressTracker()
    tracker.advance("preparing", "Preparing export...")
    tracker.advance("processing", "Encoding...")

    with pytest.raises(RuntimeError):
        tracker.advance("rendering", "Rendering diagram...")
    with pytest.raises(RuntimeError):
        tracker.advance("processing", "Encoding again...")


def test_terminal_stages_are_final() -> None:
    tracker = ProgressTracker()
    tracker.advance("preparing", "Preparing export...")
    tracker.fail("boom")

    with pytest.raises(RuntimeError):
        tracker.advance("complete", "done")
    with pytest.raises(RuntimeError):
        tracker.fail("again")


def test_unknown_stage_is_rejected() -> None:
    tracker = ProgressTracker()

    with pytest.raises(RuntimeError):
        tracker.advance("uploading", "nope")  # type: ignore[arg-type]


def test_channel_delivers_to_every_subscriber_despite_failures() -> None:
    channel = ProgressChannel()
    received: list[str] = []

    def broken(_: ExportProgress) -> None:
        raise ValueError("subscriber bug")

    channel.subscribe(broken)
    channel.subscribe(lambda update: received.append(update.stage))

    tracker = ProgressTracker(channel)
    tracker.advance("preparing", "Preparing export...")
    tracker.advance("rendering", "Rendering diagram...")

    assert received == ["preparing", "rendering"]


def test_unsubscribe_stops_delivery() -> None:
    channel = ProgressChannel()
    received: list[str] = []
    unsubscribe = channel.subscribe(lambda update: received.append(update.stage))

    tracker = ProgressTracker(channel)
    tracker.advance("preparing", "Preparing export...")
    unsubscribe()
    unsubscribe()
    tracker.advance("rendering", "Rendering diagram...")

    assert received == ["preparing"]
    assert channel.subscriber_count == 0
