"""Canonical item shapes for each progress sequence.

The HTTP handlers and the client's local fallback both build items here,
so an item committed offline looks exactly like one the server would
have stored: same fields, same defaults, same identifier convention.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from app.models.progress import Item
from app.services.statistics_service import quiz_percentage

DEFAULT_QUIZ_MAX_SCORE = 20

_ID_PREFIXES = {
    "quizScores": "quiz",
    "assignments": "assignment",
    "journalEntries": "entry",
    "materialsViewed": "material",
    "videosWatched": "video",
}


def now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def default_item_id(sequence: str) -> str:
    """Timestamp-derived id: ``<prefix>_<epoch milliseconds>``."""
    return f"{_ID_PREFIXES[sequence]}_{time.time_ns() // 1_000_000}"


def new_quiz_result(
    *,
    score: float,
    max_score: float | None = None,
    quiz_id: str | None = None,
    answers: Sequence[Any] | None = None,
    completed_at: str | None = None,
    default_max_score: int = DEFAULT_QUIZ_MAX_SCORE,
) -> Item:
    item: Item = {
        "quizId": quiz_id or default_item_id("quizScores"),
        "score": score,
        "maxScore": max_score or default_max_score,
    }
    item["percentage"] = quiz_percentage(item)
    item["answers"] = list(answers or [])
    item["completedAt"] = completed_at or now_iso()
    return item


def new_assignment(
    *,
    assignment_id: str | None = None,
    title: str | None = None,
    files: Sequence[Any] | None = None,
    status: str | None = None,
) -> Item:
    return {
        "assignmentId": assignment_id or default_item_id("assignments"),
        "title": title or "Tugas Tanpa Judul",
        "files": list(files or []),
        "status": status or "submitted",
        "submittedAt": now_iso(),
    }


def new_journal_entry(
    *,
    entry_id: str | None = None,
    content: str | None = None,
    tags: Sequence[str] | None = None,
) -> Item:
    return {
        "entryId": entry_id or default_item_id("journalEntries"),
        "content": content or "",
        "tags": list(tags or []),
        "createdAt": now_iso(),
    }


def new_material_view(
    *,
    material_id: str | None = None,
    title: str | None = None,
    time_spent: int | None = None,
) -> Item:
    return {
        "materialId": material_id or default_item_id("materialsViewed"),
        "title": title or "Materi Tanpa Judul",
        "timeSpent": time_spent or 0,
        "viewedAt": now_iso(),
    }


def new_video_watch(
    *,
    video_id: str | None = None,
    title: str | None = None,
    completion_percentage: float | None = None,
) -> Item:
    return {
        "videoId": video_id or default_item_id("videosWatched"),
        "title": title or "Video Tanpa Judul",
        "completionPercentage": completion_percentage or 0,
        "watchedAt": now_iso(),
    }
