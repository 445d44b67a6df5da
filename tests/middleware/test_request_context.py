"""Tests for the request context middleware."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/api/progress/overview")
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_request_summary_is_logged(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="app.middleware.request_context"):
        client.get("/health", headers={"X-Request-ID": "log-me"})
    records = [r for r in caplog.records if getattr(r, "request_id", None) == "log-me"]
    assert records
    assert records[-1].getMessage().startswith("GET /health -> 200")
    assert records[-1].status_code == 200  # type: ignore[attr-defined]


def test_progress_logs_carry_user_id(
    client: TestClient,
    registered: dict,
    auth: dict[str, str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.INFO, logger="app.services.progress_service"):
        client.post("/api/progress/journal", json={"content": "x"}, headers=auth)
    records = [r for r in caplog.records if r.name == "app.services.progress_service"]
    assert records
    assert registered["user"]["id"] in records[-1].getMessage()
