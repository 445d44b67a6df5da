"""Client-side session handling with an offline fallback.

register() and login() go to the API first.  When the API cannot be
reached (no response or a 5xx) the user is registered in, or checked
against, ``localUsers`` in the mirror and given a ``local_token_...``
token.  A 4xx answer (duplicate email, wrong password) is the server's
verdict and is raised as-is; it does not fall back.

A successful remote login replaces the mirror's profile, progress and
statistics with the server's copy.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any

from app.client.api import ApiClient, RemoteError
from app.client.mirror import LocalMirror
from app.client.progress_client import Outcome
from app.core.errors import AuthError, ConflictError, ValidationError
from app.models.progress import Statistics, empty_progress
from app.repos.user_repo import EMAIL_TAKEN, NIM_TAKEN
from app.services.auth_service import (
    BAD_CREDENTIALS,
    hash_password,
    normalize_email,
    verify_password,
)
from app.services.progress_items import now_iso

logger = logging.getLogger(__name__)

LOCAL_TOKEN_PREFIX = "local_token_"


@dataclass(frozen=True)
class AuthResult:
    outcome: Outcome
    user: dict[str, Any]
    token: str


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


def _local_token() -> str:
    return f"{LOCAL_TOKEN_PREFIX}{_epoch_ms()}_{secrets.token_hex(5)}"


def _public(user: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in user.items() if k != "passwordHash"}


class AuthClient:
    def __init__(self, api: ApiClient, mirror: LocalMirror) -> None:
        self._api = api
        self._mirror = mirror

    def _start_session(self, token: str, user: dict[str, Any]) -> None:
        self._mirror.save_token(token)
        self._mirror.replace_from_user(user)

    # --- Register ----------------------------------------------------------

    async def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        nim: str,
        kelas: str,
        gender: str,
    ) -> AuthResult:
        payload = {
            "name": name,
            "email": email,
            "password": password,
            "nim": nim,
            "kelas": kelas,
            "gender": gender,
        }
        try:
            data = await self._api.request(
                "POST", "/api/auth/register", json=payload, authenticated=False
            )
        except RemoteError as exc:
            if not exc.unreachable:
                raise
            logger.warning("Registration unavailable remotely, registering offline: %s", exc)
            return self._register_local(payload)

        user, token = data.get("user"), data.get("token")
        if not isinstance(user, dict) or not isinstance(token, str):
            raise RemoteError("Register response carried no user/token")
        self._start_session(token, user)
        return AuthResult(Outcome.COMMITTED_REMOTE, user, token)

    def _register_local(self, payload: dict[str, str]) -> AuthResult:
        fields = {k: (v or "").strip() for k, v in payload.items() if k != "password"}
        fields["email"] = normalize_email(fields["email"])
        if not all(fields.values()) or not payload.get("password"):
            raise ValidationError("Semua field harus diisi")

        users = self._mirror.local_users()
        for existing in users:
            if existing.get("email") == fields["email"]:
                raise ConflictError(EMAIL_TAKEN, field="email")
            if existing.get("nim") == fields["nim"]:
                raise ConflictError(NIM_TAKEN, field="nim")

        now = now_iso()
        user: dict[str, Any] = {
            "id": f"local_{_epoch_ms()}",
            **fields,
            "passwordHash": hash_password(payload["password"]),
            "progress": empty_progress(),
            "statistics": Statistics().to_dict(),
            "lastLogin": now,
            "createdAt": now,
        }
        users.append(user)
        self._mirror.save_local_users(users)

        token = _local_token()
        public = _public(user)
        self._start_session(token, public)
        logger.info("Registered offline user %s", user["id"])
        return AuthResult(Outcome.COMMITTED_LOCAL, public, token)

    # --- Login -------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResult:
        try:
            data = await self._api.request(
                "POST",
                "/api/auth/login",
                json={"email": email, "password": password},
                authenticated=False,
            )
        except RemoteError as exc:
            if not exc.unreachable:
                raise
            logger.warning("Login unavailable remotely, trying offline users: %s", exc)
            return self._login_local(email, password)

        user, token = data.get("user"), data.get("token")
        if not isinstance(user, dict) or not isinstance(token, str):
            raise RemoteError("Login response carried no user/token")
        self._start_session(token, user)
        return AuthResult(Outcome.COMMITTED_REMOTE, user, token)

    def _login_local(self, email: str, password: str) -> AuthResult:
        if not email or not password:
            raise ValidationError("Email dan password harus diisi")

        wanted = normalize_email(email)
        users = self._mirror.local_users()
        user = next((u for u in users if u.get("email") == wanted), None)
        if user is None or not verify_password(password, user.get("passwordHash", "")):
            raise AuthError(BAD_CREDENTIALS)

        user["lastLogin"] = now_iso()
        self._mirror.save_local_users(users)

        token = _local_token()
        public = _public(user)
        self._start_session(token, public)
        return AuthResult(Outcome.COMMITTED_LOCAL, public, token)

    # --- Session -----------------------------------------------------------

    def logout(self) -> None:
        self._mirror.clear_session()

    def is_authenticated(self) -> bool:
        return bool(self._mirror.token()) and self._mirror.user_data() is not None

    async def validate_token(self) -> bool:
        """Refresh userData from /api/auth/me; log out if that fails."""
        try:
            data = await self._api.request("GET", "/api/auth/me")
        except RemoteError as exc:
            logger.warning("Token validation failed: %s", exc)
            self.logout()
            return False

        user = data.get("user")
        if not isinstance(user, dict):
            self.logout()
            return False
        self._mirror.save_user_data(user)
        return True
