"""Lightweight Prometheus-style metrics utilities for the service."""

from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Iterable

_COUNTERS: Counter[str] = Counter()
_LOCK = Lock()

REQUESTS_METRIC = "diagramforge_requests_total"
EXPORTS_METRIC = "diagramforge_exports_total"
UNSUPPORTED_FORMAT_LABEL = "unsupported"


def _label(value: object) -> str:
    """Escape a label value for the text exposition format."""

    return str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def record_request(method: str, status_code: int) -> None:
    """Track an HTTP request labelled by method and status code."""

    labels = f'method="{_label(method.lower())}",status="{status_code}"'
    sample = f"{REQUESTS_METRIC}{{{labels}}}"
    with _LOCK:
        _COUNTERS[sample] += 1


def record_export(fmt: str, outcome: str) -> None:
    """Track a pipeline run labelled by format and outcome code."""

    labels = f'format="{_label(fmt)}",outcome="{_label(outcome.lower())}"'
    sample = f"{EXPORTS_METRIC}{{{labels}}}"
    with _LOCK:
        _COUNTERS[sample] += 1


def reset() -> None:
    with _LOCK:
        _COUNTERS.clear()


def _snapshot(prefix: str) -> Iterable[tuple[str, int]]:
    """Yield a snapshot of counters starting with ``prefix`` in sorted order."""

    with _LOCK:
        return sorted((key, value) for key, value in _COUNTERS.items() if key.startswith(prefix + "{"))


def render(service_version: str) -> str:
    """Render metrics using the Prometheus text exposition format."""

    lines = [
        f"# HELP {REQUESTS_METRIC} Count of HTTP requests processed by the export service",
        f"# TYPE {REQUESTS_METRIC} counter",
    ]
    requests = list(_snapshot(REQUESTS_METRIC))
    lines.extend(f"{sample} {value}" for sample, value in requests)
    if not requests:
        lines.append(f'{REQUESTS_METRIC}{{method="none",status="0"}} 0')

    lines.extend(
        [
            f"# HELP {EXPORTS_METRIC} Count of export pipeline runs by format and outcome",
            f"# TYPE {EXPORTS_METRIC} counter",
        ]
    )
    lines.extend(f"{sample} {value}" for sample, value in _snapshot(EXPORTS_METRIC))

    lines.extend(
        [
            "# HELP diagramforge_service_info Static service metadata",
            "# TYPE diagramforge_service_info gauge",
            f'diagramforge_service_info{{version="{service_version}"}} 1',
        ]
    )
    return "\n".join(lines) + "\n"


__all__ = ["UNSUPPORTED_FORMAT_LABEL", "record_export", "record_request", "render", "reset"]
