"""Tests for the Prometheus text exposition helpers."""

from __future__ import annotations

from diagramforge.services import metrics


def test_empty_render_has_placeholder_and_service_info() -> None:
    rendered = metrics.render("1.2.3")

    assert 'diagramforge_requests_total{method="none",status="0"} 0' in rendered
    assert 'diagramforge_service_info{version="1.2.3"} 1' in rendered
    assert rendered.endswith("\n")


def test_counters_accumulate_and_reset() -> None:
    metrics.record_request("POST", 200)
    metrics.record_request("post", 200)
    metrics.record_request("GET", 404)
    metrics.record_export("png", "success")
    metrics.record_export("pdf", "DOCUMENT_BUILD_FAILED")

    rendered = metrics.render("1.0.0")

    assert 'diagramforge_requests_total{method="post",status="200"} 2' in rendered
    assert 'diagramforge_requests_total{method="get",status="404"} 1' in rendered
    assert 'diagramforge_exports_total{format="pdf",outcome="document_build_failed"} 1' in rendered
    assert 'method="none"' not in rendered

    metrics.reset()

    assert 'format="png"' not in metrics.render("1.0.0")


def test_label_values_are_escaped() -> None:
    metrics.record_export('x"} 1\nevil_metric 42\n#', "failed")
    metrics.record_request("GET\\", 200)

    rendered = metrics.render("1.0.0")

    assert 'format="x\\"} 1\\nevil_metric 42\\n#"' in rendered
    assert 'method="get\\\\"' in rendered
    assert not any(line.startswith("evil_metric") for line in rendered.splitlines())
