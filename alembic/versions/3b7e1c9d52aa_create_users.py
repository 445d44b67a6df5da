"""create users

Revision ID: 3b7e1c9d52aa
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e1c9d52aa"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_EMPTY_PROGRESS = (
    '{"quizScores": [], "assignments": [], "journalEntries": [],'
    ' "materialsViewed": [], "videosWatched": []}'
)
_ZERO_STATISTICS = (
    '{"totalQuizAttempts": 0, "averageQuizScore": 0,'
    ' "totalStudyTime": 0, "streakDays": 0}'
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("nim", sa.String(length=50), nullable=False),
        sa.Column("kelas", sa.String(length=50), nullable=False),
        sa.Column("gender", sa.String(length=20), nullable=False),
        sa.Column(
            "progress",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text(f"'{_EMPTY_PROGRESS}'::jsonb"),
        ),
        sa.Column(
            "statistics",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text(f"'{_ZERO_STATISTICS}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_nim", "users", ["nim"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_users_nim", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
