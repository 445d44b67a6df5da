from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from app.models.progress import ProgressDoc, Statistics, empty_progress

# Profile fields a user may change after registration.
PROFILE_FIELDS: frozenset[str] = frozenset({"name", "nim", "kelas", "gender"})


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    name: str
    nim: str  # student number
    kelas: str  # class identifier
    gender: str
    progress: ProgressDoc = field(default_factory=empty_progress)
    statistics: Statistics = field(default_factory=Statistics)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login: datetime | None = None

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        name: str,
        nim: str,
        kelas: str,
        gender: str,
    ) -> User:
        # Registration is the only place a user starts with empty progress
        # and zeroed statistics.
        return User(
            id=uuid4(),
            email=email,
            password_hash=password_hash,
            name=name,
            nim=nim,
            kelas=kelas,
            gender=gender,
            progress=empty_progress(),
            statistics=Statistics(),
        )

    def public_dict(self) -> dict[str, Any]:
        """Profile + progress + statistics as returned to clients."""
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "nim": self.nim,
            "kelas": self.kelas,
            "gender": self.gender,
            "progress": self.progress,
            "statistics": self.statistics.to_dict(),
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
        }
