"""Derived statistics over a user's progress document.

Quiz counters are recomputed from ``quizScores`` after each mutation, never
adjusted incrementally.  ``totalStudyTime`` is the exception: material
views do not keep enough history to rebuild it, so it grows by addition.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from app.models.progress import ProgressDoc, Statistics
from app.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    # Halves round away from zero for the non-negative values seen here
    # (87.5 -> 88), unlike round()'s banker's rounding.
    return int(math.floor(value + 0.5))


def quiz_percentage(item: Mapping[str, Any]) -> int:
    """Stored percentage if present, else round(score / maxScore * 100)."""
    stored = item.get("percentage")
    if stored is not None:
        return round_half_up(float(stored))
    max_score = item.get("maxScore") or 0
    if not max_score:
        return 0
    return round_half_up((item.get("score") or 0) / max_score * 100)


def compute_quiz_statistics(quiz_scores: Iterable[Mapping[str, Any]]) -> dict[str, int]:
    """Partial statistics update derived from the quiz sequence."""
    percentages = [quiz_percentage(item) for item in quiz_scores]
    average = round_half_up(sum(percentages) / len(percentages)) if percentages else 0
    return {
        "totalQuizAttempts": len(percentages),
        "averageQuizScore": average,
    }


async def recompute(repo: UserRepo, user_id: UUID, progress: ProgressDoc) -> Statistics:
    """Recompute quiz statistics from ``progress`` and merge them into the store.

    Raises NotFoundError if the user vanished between the mutation and
    this separate store round-trip.
    """
    changes = compute_quiz_statistics(progress.get("quizScores", []))
    merged = await repo.merge_statistics(user_id, changes)
    logger.debug(
        "Statistics recomputed  user_id=%s attempts=%d average=%d",
        user_id,
        merged.total_quiz_attempts,
        merged.average_quiz_score,
    )
    return merged


async def add_study_time(repo: UserRepo, user_id: UUID, current: Statistics, minutes: int) -> Statistics:
    """Apply ``totalStudyTime = old + minutes`` for one material-view event."""
    total = current.total_study_time + max(int(minutes or 0), 0)
    return await repo.merge_statistics(user_id, {"totalStudyTime": total})
