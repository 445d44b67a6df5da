"""PostgreSQL implementation of UserRepo.

Progress and statistics writes replace the whole JSONB value.  There is
no row lock or version check around the read-modify-write: two concurrent
writers to the same user race and the last write wins.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import USER_NOT_FOUND, ConflictError, NotFoundError
from app.db.tables import UserRow
from app.models.progress import ProgressDoc, Statistics, normalize_progress
from app.models.user import User
from app.repos.user_repo import EMAIL_TAKEN, NIM_TAKEN


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_row(self, user_id: UUID) -> UserRow | None:
        # Refresh a row the session already holds so a re-read after a
        # bulk UPDATE sees the written document.
        stmt = (
            select(UserRow)
            .where(UserRow.id == user_id)
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_by_id(self, user_id: UUID) -> User | None:
        row = await self._get_row(user_id)
        return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def get_by_nim(self, nim: str) -> User | None:
        stmt = select(UserRow).where(UserRow.nim == nim)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            name=user.name,
            email=user.email,
            password_hash=user.password_hash,
            nim=user.nim,
            kelas=user.kelas,
            gender=user.gender,
            progress=normalize_progress(user.progress),
            statistics=user.statistics.to_dict(),
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError:
            # Another request registered the same email or NIM between
            # the service's lookup and this insert.
            await self._session.rollback()
            raise await self._conflict_for(user) from None

    async def _conflict_for(self, user: User) -> ConflictError:
        stmt = select(UserRow.email).where(
            or_(UserRow.email == user.email, UserRow.nim == user.nim)
        )
        emails = (await self._session.execute(stmt)).scalars().all()
        if user.email in emails:
            return ConflictError(EMAIL_TAKEN, field="email")
        return ConflictError(NIM_TAKEN, field="nim")

    async def replace_progress(self, user_id: UUID, progress: ProgressDoc) -> None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(progress=normalize_progress(progress), updated_at=func.now())
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(USER_NOT_FOUND)

    async def merge_statistics(
        self, user_id: UUID, changes: Mapping[str, Any]
    ) -> Statistics:
        stmt = select(UserRow.statistics).where(UserRow.id == user_id)
        current = (await self._session.execute(stmt)).scalar_one_or_none()
        if current is None:
            raise NotFoundError(USER_NOT_FOUND)

        merged = Statistics.from_dict(current).merged(changes)
        # Keys outside the four counters that an older writer left in the
        # document are carried over untouched.
        document = {**current, **merged.to_dict()}
        await self._session.execute(
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(statistics=document, updated_at=func.now())
        )
        return merged

    async def update_profile(
        self, user_id: UUID, changes: Mapping[str, str]
    ) -> User | None:
        nim = changes.get("nim")
        if nim is not None:
            clash = select(UserRow.id).where(UserRow.nim == nim, UserRow.id != user_id)
            if (await self._session.execute(clash)).first() is not None:
                raise ConflictError(NIM_TAKEN, field="nim")

        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(**changes, updated_at=func.now())
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(user_id)

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(password_hash=password_hash, updated_at=func.now())
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(USER_NOT_FOUND)

    async def touch_last_login(self, user_id: UUID) -> None:
        stmt = update(UserRow).where(UserRow.id == user_id).values(last_login=func.now())
        await self._session.execute(stmt)


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        name=row.name,
        nim=row.nim,
        kelas=row.kelas,
        gender=row.gender,
        progress=normalize_progress(row.progress),
        statistics=Statistics.from_dict(row.statistics),
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login=row.last_login,
    )
