"""Tests for cooperative cancellation tokens."""

from __future__ import annotations

import pytest

from diagramforge.services.cancellation import CancellationToken
from diagramforge.services.service_errors import ExportCancelledError


def test_token_starts_active() -> None:
    token = CancellationToken()

    token.raise_if_cancelled("validation")

    assert token.cancelled is False
    assert token.reason is None


def test_cancelled_token_raises_with_stage_and_reason() -> None:
    token = CancellationToken()
    token.cancel("user closed dialog")

    with pytest.raises(ExportCancelledError) as excinfo:
        token.raise_if_cancelled("encoding")

    assert token.cancelled is True
    assert excinfo.value.message == "Export was cancelled"
    assert excinfo.value.details == {"stage": "encoding", "reason": "user closed dialog"}
