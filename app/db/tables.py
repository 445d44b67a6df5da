"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in app/models/.
Progress and statistics live as JSONB documents on the user row, so
every progress mutation is a whole-document read-modify-write.
"""

from __future__ import annotations

import datetime
import uuid
from typing import Any

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base
from app.models.progress import Statistics, empty_progress


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    nim: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    kelas: Mapped[str] = mapped_column(String(50), nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    progress: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=empty_progress
    )
    statistics: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=lambda: Statistics().to_dict()
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    last_login: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
