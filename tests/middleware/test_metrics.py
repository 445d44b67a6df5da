"""Tests for Prometheus metrics.

The default registry is process-global and counters never reset, so
every assertion compares a value before and after the action.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    assert _get_sample("http_requests_total", labels) - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert _get_sample("http_request_duration_seconds_count", labels) - before >= 1


def test_item_routes_are_labelled_by_template(
    client: TestClient, auth: dict[str, str]
) -> None:
    labels = {
        "method": "DELETE",
        "endpoint": "/api/progress/journal/{entry_id}",
        "status_code": "200",
    }
    before = _get_sample("http_requests_total", labels)
    client.delete("/api/progress/journal/entry_1", headers=auth)
    client.delete("/api/progress/journal/entry_2", headers=auth)
    assert _get_sample("http_requests_total", labels) - before == 2


def test_progress_mutations_counted(client: TestClient, auth: dict[str, str]) -> None:
    labels = {"sequence": "quizScores", "operation": "append"}
    before = _get_sample("progress_mutations_total", labels)
    client.post("/api/progress/quiz", json={"score": 5}, headers=auth)
    assert _get_sample("progress_mutations_total", labels) - before == 1


def test_auth_events_counted(client: TestClient, registered: dict) -> None:
    labels = {"event": "login", "result": "rejected"}
    before = _get_sample("auth_events_total", labels)
    client.post("/api/auth/login", json={"email": registered["user"]["email"], "password": "x"})
    assert _get_sample("auth_events_total", labels) - before == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "progress_mutations_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
