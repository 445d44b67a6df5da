"""Dual-write progress client.

Each mutation is tried against the API first.  On success the local
mirror is brought in line with what the server returned and the result
is marked COMMITTED_REMOTE.  On any RemoteError the same structural
change is applied to the mirror with the pure functions the server uses
(app.models.progress) and the item builders the server uses
(app.services.progress_items); the result is marked COMMITTED_LOCAL.

Locally committed items are never pushed to the server later.  They
stay in the mirror until a remote write or login replaces it.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from app.client.api import ApiClient, RemoteError, SaveFailedError
from app.client.mirror import LocalMirror
from app.core.errors import AppError
from app.models.progress import (
    SEQUENCES,
    STATISTICS_FIELDS,
    Item,
    ProgressDoc,
    Statistics,
    append_item,
    empty_progress,
    key_field_for,
    normalize_progress,
    remove_item,
    update_item,
)
from app.services import progress_items
from app.services.statistics_service import compute_quiz_statistics

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    COMMITTED_REMOTE = "committed-remote"
    COMMITTED_LOCAL = "committed-local"


@dataclass(frozen=True)
class MutationResult:
    outcome: Outcome
    item: Item | None
    statistics: Statistics = field(default_factory=Statistics)

    @property
    def remote(self) -> bool:
        return self.outcome is Outcome.COMMITTED_REMOTE


@dataclass(frozen=True)
class Snapshot:
    """Progress and statistics as last read, and where they came from."""

    outcome: Outcome
    progress: ProgressDoc = field(default_factory=empty_progress)
    statistics: Statistics = field(default_factory=Statistics)


def _body(**fields: Any) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


# --- Response parsing ------------------------------------------------------
# A 2xx envelope whose data does not have the expected shape is treated
# like any other remote failure.


def _item(data: dict[str, Any], key: str) -> Item:
    item = data.get(key)
    if not isinstance(item, dict):
        raise RemoteError(f"Response carried no {key}")
    return item


def _item_list(value: Any, name: str) -> list[Item]:
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise RemoteError(f"Response carried a malformed {name}")
    return value


def _statistics_changes(raw: Any) -> dict[str, int]:
    """Known statistics fields from a response, as ints."""
    if not isinstance(raw, dict):
        raise RemoteError("Response carried malformed statistics")
    changes: dict[str, int] = {}
    for key, value in raw.items():
        if key not in STATISTICS_FIELDS:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise RemoteError(f"Response carried a malformed {key}")
        changes[key] = int(value)
    return changes


def _progress_doc(raw: Any) -> ProgressDoc:
    if not isinstance(raw, dict):
        raise RemoteError("Response carried a malformed progress")
    for name in SEQUENCES:
        if name in raw:
            _item_list(raw[name], name)
    return normalize_progress(raw)


def _upsert(progress: ProgressDoc, sequence: str, item: Item) -> ProgressDoc:
    key_field = key_field_for(sequence)
    doc = normalize_progress(progress)
    for index, existing in enumerate(doc[sequence]):
        if existing.get(key_field) == item.get(key_field):
            doc[sequence][index] = dict(item)
            return doc
    return append_item(doc, sequence, item)


class ProgressClient:
    def __init__(self, api: ApiClient, mirror: LocalMirror) -> None:
        self._api = api
        self._mirror = mirror

    async def _dual_write(
        self,
        action: str,
        remote: Callable[[], Awaitable[MutationResult]],
        local: Callable[[], MutationResult],
    ) -> MutationResult:
        try:
            return await remote()
        except RemoteError as exc:
            logger.warning("%s failed remotely, saving locally: %s", action, exc)
            remote_error = exc
        except OSError as exc:
            # The server took the write but the mirror could not record it.
            logger.error("%s saved remotely, mirror write failed: %s", action, exc)
            raise SaveFailedError(f"Gagal menyimpan {action}", local_error=exc) from exc

        try:
            result = local()
        except (AppError, OSError) as exc:
            logger.error("%s failed locally: %s", action, exc)
            raise SaveFailedError(
                f"Gagal menyimpan {action}", remote_error=remote_error, local_error=exc
            ) from exc
        logger.info("%s saved locally", action)
        return result

    # --- Local mutations ---------------------------------------------------

    def _append_local(self, sequence: str, item: Item) -> MutationResult:
        progress = append_item(self._mirror.progress(), sequence, item)
        self._mirror.save_progress(progress)
        self._mirror.enqueue(sequence, item)
        return MutationResult(Outcome.COMMITTED_LOCAL, item, self._mirror.statistics())

    def _update_local(self, sequence: str, item_key: str, patch: dict[str, Any]) -> MutationResult:
        progress, updated = update_item(self._mirror.progress(), sequence, item_key, patch)
        self._mirror.save_progress(progress)
        return MutationResult(Outcome.COMMITTED_LOCAL, updated, self._mirror.statistics())

    def _delete_local(self, sequence: str, item_key: str) -> MutationResult:
        self._mirror.save_progress(remove_item(self._mirror.progress(), sequence, item_key))
        return MutationResult(Outcome.COMMITTED_LOCAL, None, self._mirror.statistics())

    def _add_study_time(self, minutes: int | None) -> Statistics:
        current = self._mirror.statistics()
        statistics = current.merged(
            {"totalStudyTime": current.total_study_time + max(int(minutes or 0), 0)}
        )
        self._mirror.save_statistics(statistics)
        return statistics

    # --- Appends -----------------------------------------------------------

    async def save_quiz_score(
        self,
        score: float,
        max_score: float | None = None,
        *,
        quiz_id: str | None = None,
        answers: list[Any] | None = None,
        completed_at: str | None = None,
    ) -> MutationResult:
        async def remote() -> MutationResult:
            data = await self._api.request(
                "POST",
                "/api/progress/quiz",
                json=_body(
                    quizId=quiz_id,
                    score=score,
                    maxScore=max_score,
                    answers=answers,
                    completedAt=completed_at,
                ),
            )
            item = _item(data, "quizResult")
            returned = data.get("progress", {})
            if not isinstance(returned, dict):
                raise RemoteError("Quiz response carried a malformed progress")
            quiz_scores = returned.get("quizScores")
            if quiz_scores is not None:
                quiz_scores = _item_list(quiz_scores, "quizScores")
            returned_stats = data.get("statistics")
            changes = _statistics_changes(returned_stats) if returned_stats is not None else None

            progress = self._mirror.progress()
            if quiz_scores is not None:
                progress["quizScores"] = quiz_scores
            else:
                progress = _upsert(progress, "quizScores", item)
            self._mirror.save_progress(progress)

            if changes is None:
                changes = compute_quiz_statistics(progress["quizScores"])
            statistics = self._mirror.statistics().merged(changes)
            self._mirror.save_statistics(statistics)
            return MutationResult(Outcome.COMMITTED_REMOTE, item, statistics)

        def local() -> MutationResult:
            item = progress_items.new_quiz_result(
                score=score,
                max_score=max_score,
                quiz_id=quiz_id,
                answers=answers,
                completed_at=completed_at,
                default_max_score=self._api.config.default_quiz_max_score,
            )
            progress = append_item(self._mirror.progress(), "quizScores", item)
            self._mirror.save_progress(progress)
            self._mirror.enqueue("quizScores", item)
            statistics = self._mirror.statistics().merged(
                compute_quiz_statistics(progress["quizScores"])
            )
            self._mirror.save_statistics(statistics)
            return MutationResult(Outcome.COMMITTED_LOCAL, item, statistics)

        return await self._dual_write("hasil quiz", remote, local)

    async def _append(
        self,
        action: str,
        sequence: str,
        path: str,
        response_key: str,
        body: dict[str, Any],
        build: Callable[[], Item],
    ) -> MutationResult:
        async def remote() -> MutationResult:
            data = await self._api.request("POST", path, json=body)
            item = _item(data, response_key)
            self._mirror.save_progress(_upsert(self._mirror.progress(), sequence, item))
            return MutationResult(Outcome.COMMITTED_REMOTE, item, self._mirror.statistics())

        return await self._dual_write(action, remote, lambda: self._append_local(sequence, build()))

    async def save_assignment(
        self,
        *,
        title: str | None = None,
        files: list[Any] | None = None,
        status: str | None = None,
        assignment_id: str | None = None,
    ) -> MutationResult:
        return await self._append(
            "tugas",
            "assignments",
            "/api/progress/assignment",
            "assignment",
            _body(assignmentId=assignment_id, title=title, files=files, status=status),
            lambda: progress_items.new_assignment(
                assignment_id=assignment_id, title=title, files=files, status=status
            ),
        )

    async def save_journal_entry(
        self,
        *,
        content: str | None = None,
        tags: list[str] | None = None,
        entry_id: str | None = None,
    ) -> MutationResult:
        return await self._append(
            "jurnal",
            "journalEntries",
            "/api/progress/journal",
            "journalEntry",
            _body(entryId=entry_id, content=content, tags=tags),
            lambda: progress_items.new_journal_entry(
                entry_id=entry_id, content=content, tags=tags
            ),
        )

    async def track_video_watch(
        self,
        *,
        video_id: str | None = None,
        title: str | None = None,
        completion_percentage: float | None = None,
    ) -> MutationResult:
        return await self._append(
            "progress video",
            "videosWatched",
            "/api/progress/video-watched",
            "video",
            _body(videoId=video_id, title=title, completionPercentage=completion_percentage),
            lambda: progress_items.new_video_watch(
                video_id=video_id, title=title, completion_percentage=completion_percentage
            ),
        )

    async def track_material_view(
        self,
        *,
        material_id: str | None = None,
        title: str | None = None,
        time_spent: int | None = None,
    ) -> MutationResult:
        async def remote() -> MutationResult:
            data = await self._api.request(
                "POST",
                "/api/progress/material-viewed",
                json=_body(materialId=material_id, title=title, timeSpent=time_spent),
            )
            item = _item(data, "material")
            minutes = item.get("timeSpent") or 0
            if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
                raise RemoteError("Response carried a malformed timeSpent")
            self._mirror.save_progress(_upsert(self._mirror.progress(), "materialsViewed", item))
            statistics = self._add_study_time(int(minutes))
            return MutationResult(Outcome.COMMITTED_REMOTE, item, statistics)

        def local() -> MutationResult:
            item = progress_items.new_material_view(
                material_id=material_id, title=title, time_spent=time_spent
            )
            self._mirror.save_progress(
                append_item(self._mirror.progress(), "materialsViewed", item)
            )
            statistics = self._add_study_time(item["timeSpent"])
            return MutationResult(Outcome.COMMITTED_LOCAL, item, statistics)

        return await self._dual_write("progress materi", remote, local)

    # --- Keyed updates and deletes -----------------------------------------

    async def _update(
        self,
        action: str,
        sequence: str,
        path: str,
        response_key: str,
        item_key: str,
        patch: dict[str, Any],
    ) -> MutationResult:
        async def remote() -> MutationResult:
            data = await self._api.request("PUT", path, json=patch)
            item = _item(data, response_key)
            self._mirror.save_progress(_upsert(self._mirror.progress(), sequence, item))
            return MutationResult(Outcome.COMMITTED_REMOTE, item, self._mirror.statistics())

        return await self._dual_write(
            action, remote, lambda: self._update_local(sequence, item_key, patch)
        )

    async def _delete(self, action: str, sequence: str, path: str, item_key: str) -> MutationResult:
        async def remote() -> MutationResult:
            await self._api.request("DELETE", path)
            self._mirror.save_progress(remove_item(self._mirror.progress(), sequence, item_key))
            return MutationResult(Outcome.COMMITTED_REMOTE, None, self._mirror.statistics())

        return await self._dual_write(
            action, remote, lambda: self._delete_local(sequence, item_key)
        )

    async def update_journal_entry(
        self,
        entry_id: str,
        *,
        content: str | None = None,
        tags: list[str] | None = None,
    ) -> MutationResult:
        return await self._update(
            "jurnal",
            "journalEntries",
            f"/api/progress/journal/{entry_id}",
            "journalEntry",
            entry_id,
            _body(content=content, tags=tags),
        )

    async def delete_journal_entry(self, entry_id: str) -> MutationResult:
        return await self._delete(
            "jurnal", "journalEntries", f"/api/progress/journal/{entry_id}", entry_id
        )

    async def update_assignment(
        self,
        assignment_id: str,
        *,
        title: str | None = None,
        files: list[Any] | None = None,
        status: str | None = None,
    ) -> MutationResult:
        return await self._update(
            "tugas",
            "assignments",
            f"/api/progress/assignment/{assignment_id}",
            "assignment",
            assignment_id,
            _body(title=title, files=files, status=status),
        )

    async def delete_assignment(self, assignment_id: str) -> MutationResult:
        return await self._delete(
            "tugas", "assignments", f"/api/progress/assignment/{assignment_id}", assignment_id
        )

    # --- Reads -------------------------------------------------------------

    async def load_overview(self) -> Snapshot:
        """Fetch progress and statistics, replacing the mirror on success."""
        try:
            data = await self._api.request("GET", "/api/progress/overview")
            progress = _progress_doc(data.get("progress", {}))
            raw_stats = data.get("statistics")
            statistics = (
                Statistics().merged(_statistics_changes(raw_stats))
                if raw_stats is not None
                else Statistics()
            )
        except RemoteError as exc:
            logger.warning("Overview unavailable remotely, reading local mirror: %s", exc)
            return Snapshot(Outcome.COMMITTED_LOCAL, self._mirror.progress(), self._mirror.statistics())

        try:
            self._mirror.save_progress(progress)
            self._mirror.save_statistics(statistics)
        except OSError as exc:
            logger.warning("Could not refresh local mirror from overview: %s", exc)
        return Snapshot(Outcome.COMMITTED_REMOTE, progress, statistics)
