"""Assert that passwords and bearer tokens never appear in log output."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from tests.conftest import STUDENT, register

SECRET_PASSWORD = "super-s3cret-p@ssw0rd!"


def _all_log_text(caplog: pytest.LogCaptureFixture) -> str:
    return "\n".join(record.getMessage() for record in caplog.records)


def test_register_and_failed_login_do_not_log_password(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        register(client, password=SECRET_PASSWORD)
        client.post(
            "/api/auth/login",
            json={"email": STUDENT["email"], "password": SECRET_PASSWORD + "x"},
        )

    assert caplog.records, "expected auth events to be logged"
    assert SECRET_PASSWORD not in _all_log_text(caplog)


def test_authenticated_requests_do_not_log_token(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    token = register(client)["token"]
    with caplog.at_level(logging.DEBUG):
        client.post(
            "/api/progress/quiz",
            json={"score": 10},
            headers={"Authorization": f"Bearer {token}"},
        )
        client.get("/api/progress/overview", headers={"Authorization": f"Bearer {token}x"})

    assert token not in _all_log_text(caplog)


def test_password_change_does_not_log_either_password(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    token = register(client)["token"]
    with caplog.at_level(logging.DEBUG):
        client.put(
            "/api/auth/password",
            json={"currentPassword": STUDENT["password"], "newPassword": SECRET_PASSWORD},
            headers={"Authorization": f"Bearer {token}"},
        )

    text = _all_log_text(caplog)
    assert STUDENT["password"] not in text
    assert SECRET_PASSWORD not in text
