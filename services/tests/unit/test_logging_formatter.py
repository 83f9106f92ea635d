from __future__ import annotations

import json
import logging

from diagramforge.services.logging_config import MAX_FIELD_LENGTH, JsonFormatter, configure_logging


def _format(record_kwargs: dict[str, object]) -> dict[str, object]:
    formatter = JsonFormatter()
    record = logging.makeLogRecord({"msg": "export.completed", "name": "diagramforge.services.test", **record_kwargs})
    return json.loads(formatter.format(record))


def test_json_formatter_merges_extra_payload() -> None:
    record = _format({"extra_payload": {"format": "png", "bytes": 1024}})

    assert record["message"] == "export.completed"
    assert record["logger"] == "diagramforge.services.test"
    assert record["format"] == "png"
    assert record["bytes"] == 1024
    assert "timestamp" in record


def test_json_formatter_clips_markup_and_binary_fields() -> None:
    svg = "<svg>" + "x" * 2000 + "</svg>"
    payload = {
        "svg": svg,
        "payload": b"\x89PNG\r\n",
        "nested": {"items": ["short", "y" * (MAX_FIELD_LENGTH + 10)]},
    }

    record = _format({"extra_payload": payload})

    assert record["svg"].startswith("<svg>")
    assert record["svg"].endswith(f"...[{len(svg) - MAX_FIELD_LENGTH} more chars]")
    assert record["payload"] == "<6 bytes>"
    assert record["nested"]["items"][0] == "short"
    assert record["nested"]["items"][1].endswith("...[10 more chars]")


def test_json_formatter_serialises_unknown_types() -> None:
    class Marker:
        def __str__(self) -> str:
            return "marker"

    record = _format({"extra_payload": {"value": Marker()}})

    assert record["value"] == "marker"


def test_configure_logging_applies_level() -> None:
    configure_logging("debug")

    assert logging.getLogger("diagramforge.services").level == logging.DEBUG

    configure_logging()
