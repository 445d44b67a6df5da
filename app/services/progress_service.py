"""Read-modify-write operations on a user's progress document.

Every operation loads the whole document, changes it in memory with the
pure functions in app.models.progress, and writes the whole document
back.  Mutations to ``quizScores`` are followed by a statistics
recompute.  No lock is taken: concurrent writers to one user race and
the last full-document write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from app.core.errors import USER_NOT_FOUND, NotFoundError
from app.core.metrics import PROGRESS_MUTATIONS
from app.models.progress import (
    Item,
    ProgressDoc,
    append_item,
    key_field_for,
    remove_item,
    update_item,
)
from app.models.user import User
from app.repos.user_repo import UserRepo
from app.services import statistics_service

logger = logging.getLogger(__name__)

# Sequences whose contents feed the recomputed statistics.
_AGGREGATED_SEQUENCES = frozenset({"quizScores"})


async def _load_user(repo: UserRepo, user_id: UUID) -> User:
    user = await repo.get_by_id(user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


async def _persist(repo: UserRepo, user_id: UUID, sequence: str, progress: ProgressDoc) -> None:
    await repo.replace_progress(user_id, progress)
    if sequence in _AGGREGATED_SEQUENCES:
        await statistics_service.recompute(repo, user_id, progress)


async def append(repo: UserRepo, user_id: UUID, sequence: str, item: Item) -> Item:
    """Append ``item`` to ``sequence``, creating the sequence if absent."""
    key_field = key_field_for(sequence)
    user = await _load_user(repo, user_id)

    progress = append_item(user.progress, sequence, item)
    await _persist(repo, user_id, sequence, progress)

    PROGRESS_MUTATIONS.labels(sequence=sequence, operation="append").inc()
    logger.info(
        "Progress item appended  user_id=%s sequence=%s key=%s",
        user_id,
        sequence,
        item.get(key_field),
    )
    return item


async def update_by_key(
    repo: UserRepo,
    user_id: UUID,
    sequence: str,
    item_key: str,
    patch: Mapping[str, Any],
) -> Item:
    """Merge allow-listed ``patch`` fields into the keyed item.

    Raises NotFoundError when the user or the keyed item is absent and
    ValidationError when the patch names a non-patchable field.
    """
    user = await _load_user(repo, user_id)

    progress, updated = update_item(user.progress, sequence, item_key, patch)
    await _persist(repo, user_id, sequence, progress)

    PROGRESS_MUTATIONS.labels(sequence=sequence, operation="update").inc()
    logger.info(
        "Progress item updated  user_id=%s sequence=%s key=%s fields=%s",
        user_id,
        sequence,
        item_key,
        sorted(patch),
    )
    return updated


async def delete_by_key(repo: UserRepo, user_id: UUID, sequence: str, item_key: str) -> None:
    """Remove the keyed item.  Idempotent: an absent key still writes back."""
    user = await _load_user(repo, user_id)

    progress = remove_item(user.progress, sequence, item_key)
    await _persist(repo, user_id, sequence, progress)

    PROGRESS_MUTATIONS.labels(sequence=sequence, operation="delete").inc()
    logger.info(
        "Progress item deleted  user_id=%s sequence=%s key=%s",
        user_id,
        sequence,
        item_key,
    )


async def get_overview(repo: UserRepo, user_id: UUID) -> User:
    return await _load_user(repo, user_id)


async def list_sequence(repo: UserRepo, user_id: UUID, sequence: str) -> list[Item]:
    key_field_for(sequence)
    user = await _load_user(repo, user_id)
    return user.progress.get(sequence, [])


async def record_material_view(repo: UserRepo, user_id: UUID, item: Item) -> Item:
    """Append a material view and add its ``timeSpent`` to totalStudyTime."""
    await append(repo, user_id, "materialsViewed", item)
    user = await _load_user(repo, user_id)
    await statistics_service.add_study_time(
        repo, user_id, user.statistics, item.get("timeSpent") or 0
    )
    return item
