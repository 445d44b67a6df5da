from __future__ import annotations

import sys
from collections.abc import Iterator
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import SETTINGS  # noqa: E402
from app.main import create_app  # noqa: E402
from app.repos.user_repo import InMemoryUserRepo  # noqa: E402

STUDENT = {
    "name": "Siti Rahma",
    "email": "siti@example.com",
    "password": "rahasia-123",
    "nim": "2024001",
    "kelas": "TI-1A",
    "gender": "P",
}


@pytest.fixture
def app() -> FastAPI:
    """Fresh app per test on the in-memory store, whatever DATABASE_URL says."""
    return create_app(replace(SETTINGS, app_env="test", database_url=None))


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_repo(app: FastAPI) -> InMemoryUserRepo:
    return app.state.user_repo


def register(client: TestClient, **overrides: str) -> dict:
    """POST /api/auth/register and return the envelope's data."""
    resp = client.post("/api/auth/register", json={**STUDENT, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
def registered(client: TestClient) -> dict:
    """``{user, token}`` for a freshly registered student."""
    return register(client)


@pytest.fixture
def token(registered: dict) -> str:
    return registered["token"]


@pytest.fixture
def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
