from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

from app.core.errors import USER_NOT_FOUND, ConflictError, NotFoundError
from app.models.progress import ProgressDoc, Statistics, normalize_progress
from app.models.user import User

EMAIL_TAKEN = "Email sudah terdaftar"
NIM_TAKEN = "NIM sudah terdaftar"


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def get_by_nim(self, nim: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def replace_progress(self, user_id: UUID, progress: ProgressDoc) -> None: ...
    async def merge_statistics(
        self, user_id: UUID, changes: Mapping[str, Any]
    ) -> Statistics: ...
    async def update_profile(
        self, user_id: UUID, changes: Mapping[str, str]
    ) -> User | None: ...
    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None: ...
    async def touch_last_login(self, user_id: UUID) -> None: ...


class InMemoryUserRepo:
    """Process-local store used when no DATABASE_URL is configured.

    Progress documents are deep-copied on the way in and out so callers
    never share mutable state with the store, mirroring a JSONB column.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}

    def clear(self) -> None:
        self._by_id.clear()

    def _require(self, user_id: UUID) -> User:
        user = self._by_id.get(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    def _store(self, user: User) -> User:
        stored = replace(user, updated_at=datetime.now(UTC))
        self._by_id[user.id] = stored
        return stored

    @staticmethod
    def _copy_out(user: User) -> User:
        return replace(user, progress=copy.deepcopy(user.progress))

    async def get_by_id(self, user_id: UUID) -> User | None:
        user = self._by_id.get(user_id)
        return self._copy_out(user) if user is not None else None

    async def get_by_email(self, email: str) -> User | None:
        for user in self._by_id.values():
            if user.email == email:
                return self._copy_out(user)
        return None

    async def get_by_nim(self, nim: str) -> User | None:
        for user in self._by_id.values():
            if user.nim == nim:
                return self._copy_out(user)
        return None

    async def add(self, user: User) -> None:
        for existing in self._by_id.values():
            if existing.email == user.email:
                raise ConflictError(EMAIL_TAKEN, field="email")
            if existing.nim == user.nim:
                raise ConflictError(NIM_TAKEN, field="nim")
        now = datetime.now(UTC)
        self._by_id[user.id] = replace(
            user,
            progress=normalize_progress(copy.deepcopy(user.progress)),
            created_at=now,
            updated_at=now,
        )

    async def replace_progress(self, user_id: UUID, progress: ProgressDoc) -> None:
        user = self._require(user_id)
        self._store(replace(user, progress=normalize_progress(copy.deepcopy(progress))))

    async def merge_statistics(
        self, user_id: UUID, changes: Mapping[str, Any]
    ) -> Statistics:
        user = self._require(user_id)
        merged = user.statistics.merged(changes)
        self._store(replace(user, statistics=merged))
        return merged

    async def update_profile(
        self, user_id: UUID, changes: Mapping[str, str]
    ) -> User | None:
        user = self._by_id.get(user_id)
        if user is None:
            return None
        nim = changes.get("nim")
        if nim is not None and any(
            u.nim == nim and u.id != user_id for u in self._by_id.values()
        ):
            raise ConflictError(NIM_TAKEN, field="nim")
        return self._copy_out(self._store(replace(user, **changes)))

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        user = self._require(user_id)
        self._store(replace(user, password_hash=password_hash))

    async def touch_last_login(self, user_id: UUID) -> None:
        user = self._require(user_id)
        self._by_id[user_id] = replace(user, last_login=datetime.now(UTC))
