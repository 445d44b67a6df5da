"""Thin async HTTP wrapper around the Virtual Lab API.

One attempt per call, no retries.  Anything short of a 2xx response
with a ``{"success": true}`` envelope is raised as RemoteError, which
the progress and auth clients treat as the signal to fall back to the
local mirror.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from app.client.mirror import LocalMirror
from app.client.storage import InMemoryStorage, JsonFileStorage, LocalStorage
from app.services.progress_items import DEFAULT_QUIZ_MAX_SCORE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = "http://localhost:8000"
    # Seconds.  A hanging request counts as a failure once this expires.
    timeout: float = 10.0
    # None keeps the mirror in memory for the life of the process.
    storage_path: Path | None = None
    # Keep in step with the server's DEFAULT_QUIZ_MAX_SCORE.
    default_quiz_max_score: int = DEFAULT_QUIZ_MAX_SCORE

    def open_storage(self) -> LocalStorage:
        if self.storage_path is None:
            return InMemoryStorage()
        return JsonFileStorage(self.storage_path)


class RemoteError(RuntimeError):
    """The remote call did not produce a successful envelope.

    ``status_code`` is None when no response arrived at all.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def unreachable(self) -> bool:
        """True for transport failures and server-side (5xx) errors."""
        return self.status_code is None or self.status_code >= 500


class SaveFailedError(RuntimeError):
    """Both the remote write and the local fallback failed."""

    def __init__(
        self,
        message: str,
        *,
        remote_error: Exception | None = None,
        local_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.remote_error = remote_error
        self.local_error = local_error


class ApiClient:
    def __init__(
        self,
        mirror: LocalMirror,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._mirror = mirror
        self._config = config or ClientConfig()
        self._http = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=transport,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> dict[str, Any]:
        """Send one request and return the envelope's ``data`` object."""
        headers: dict[str, str] = {}
        token = self._mirror.token() if authenticated else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._http.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {path} failed: {exc!r}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise RemoteError(
                f"{method} {path} returned a malformed response",
                status_code=response.status_code,
            )
        if response.is_error or not body.get("success"):
            raise RemoteError(
                str(body.get("message") or f"{method} {path} -> {response.status_code}"),
                status_code=response.status_code,
            )

        data = body.get("data")
        return data if isinstance(data, dict) else {}
