from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
from fastapi import FastAPI

from app.client.api import ApiClient, ClientConfig
from app.client.auth_client import AuthClient
from app.client.mirror import LocalMirror
from app.client.progress_client import ProgressClient
from app.client.storage import InMemoryStorage

BASE_URL = "http://testserver"


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def mirror() -> LocalMirror:
    return LocalMirror(InMemoryStorage())


@pytest.fixture
async def online_api(app: FastAPI, mirror: LocalMirror) -> AsyncIterator[ApiClient]:
    """ApiClient wired straight into the app under test."""
    transport = httpx.ASGITransport(app=app)
    async with ApiClient(mirror, ClientConfig(base_url=BASE_URL), transport=transport) as api:
        yield api


@pytest.fixture
async def offline_api(mirror: LocalMirror) -> AsyncIterator[ApiClient]:
    """ApiClient whose every request fails with a connection error."""
    transport = httpx.MockTransport(_unreachable)
    async with ApiClient(mirror, ClientConfig(base_url=BASE_URL), transport=transport) as api:
        yield api


@pytest.fixture
def online(online_api: ApiClient, mirror: LocalMirror) -> tuple[AuthClient, ProgressClient]:
    return AuthClient(online_api, mirror), ProgressClient(online_api, mirror)


@pytest.fixture
def offline(offline_api: ApiClient, mirror: LocalMirror) -> tuple[AuthClient, ProgressClient]:
    return AuthClient(offline_api, mirror), ProgressClient(offline_api, mirror)
