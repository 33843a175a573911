"""Prometheus middleware tests.

The default registry is process-global and counters never reset, so
every assertion compares a sample before and after the request.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def _requests(endpoint: str, status_code: str) -> float:
    return _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": endpoint, "status_code": status_code},
    )


def test_request_counter_increments(client: TestClient) -> None:
    before = _requests("/health", "200")
    client.get("/health")
    assert _requests("/health", "200") - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before >= 1


def test_endpoint_label_is_route_template(
    client: TestClient, learner_headers: dict[str, str]
) -> None:
    template = "/v1/modules/{module_id}"
    before = _requests(template, "200")
    client.get("/v1/modules/workplace-safety", headers=learner_headers)
    client.get("/v1/modules/security-basics", headers=learner_headers)
    assert _requests(template, "200") - before == 2
    assert _requests("/v1/modules/workplace-safety", "200") == 0


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    before = _requests("<unmatched>", "404")
    client.get("/no/such/page")
    assert _requests("<unmatched>", "404") - before >= 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "exam_submissions_total" in resp.text
    assert "lesson_completions_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    before = _requests("/metrics", "200")
    client.get("/metrics")
    client.get("/metrics")
    assert _requests("/metrics", "200") == before
