"""Progress tracking endpoints under /api/progress.

POST   /quiz, /assignment, /journal, /material-viewed, /video-watched
       append one item to the matching sequence (201)
GET    /overview                      all five sequences + statistics
GET    /quiz, /assignment, /journal   one sequence
PUT    /journal/{entryId}, /assignment/{assignmentId}     patch one item
DELETE /journal/{entryId}, /assignment/{assignmentId}     idempotent remove

Item bodies are built by app.services.progress_items, the same builders
the client uses for its offline fallback.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from app.api.dependencies import AppSettings, CurrentUser, Repo
from app.api.responses import envelope
from app.core.errors import USER_NOT_FOUND, NotFoundError
from app.services import progress_items, progress_service

router = APIRouter(prefix="/api/progress", tags=["progress"])


# --- Request schemas -------------------------------------------------------


class QuizIn(BaseModel):
    quizId: str | None = None
    score: int | float
    maxScore: int | float | None = None
    answers: list[Any] | None = None
    completedAt: str | None = None


class AssignmentIn(BaseModel):
    assignmentId: str | None = None
    title: str | None = None
    files: list[Any] | None = None
    status: str | None = None


class JournalIn(BaseModel):
    entryId: str | None = None
    content: str | None = None
    tags: list[str] | None = None


class MaterialViewIn(BaseModel):
    materialId: str | None = None
    title: str | None = None
    timeSpent: int | None = None


class VideoWatchIn(BaseModel):
    videoId: str | None = None
    title: str | None = None
    completionPercentage: int | float | None = None


# Patch bodies reject unknown fields; the service re-checks against the
# per-sequence allow-list before merging.


class AssignmentPatchIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    files: list[Any] | None = None
    status: str | None = None


class JournalPatchIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str | None = None
    tags: list[str] | None = None


# --- Appends ---------------------------------------------------------------


@router.post("/quiz", status_code=status.HTTP_201_CREATED)
async def save_quiz_result(
    body: QuizIn,
    principal: CurrentUser,
    repo: Repo,
    settings: AppSettings,
) -> JSONResponse:
    quiz_result = progress_items.new_quiz_result(
        quiz_id=body.quizId,
        score=body.score,
        max_score=body.maxScore,
        answers=body.answers,
        completed_at=body.completedAt,
        default_max_score=settings.default_quiz_max_score,
    )
    await progress_service.append(repo, principal.user_id, "quizScores", quiz_result)

    user = await repo.get_by_id(principal.user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)

    statistics = user.statistics.to_dict()
    return envelope(
        {
            "quizResult": quiz_result,
            "statistics": {
                "totalQuizAttempts": statistics["totalQuizAttempts"],
                "averageQuizScore": statistics["averageQuizScore"],
            },
            "progress": {"quizScores": user.progress["quizScores"]},
        },
        message="Hasil quiz berhasil disimpan",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/assignment", status_code=status.HTTP_201_CREATED)
async def save_assignment(body: AssignmentIn, principal: CurrentUser, repo: Repo) -> JSONResponse:
    assignment = progress_items.new_assignment(
        assignment_id=body.assignmentId,
        title=body.title,
        files=body.files,
        status=body.status,
    )
    await progress_service.append(repo, principal.user_id, "assignments", assignment)
    return envelope(
        {"assignment": assignment},
        message="Tugas berhasil disimpan",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/journal", status_code=status.HTTP_201_CREATED)
async def save_journal_entry(body: JournalIn, principal: CurrentUser, repo: Repo) -> JSONResponse:
    entry = progress_items.new_journal_entry(
        entry_id=body.entryId, content=body.content, tags=body.tags
    )
    await progress_service.append(repo, principal.user_id, "journalEntries", entry)
    return envelope(
        {"journalEntry": entry},
        message="Jurnal berhasil disimpan",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/material-viewed", status_code=status.HTTP_201_CREATED)
async def material_viewed(body: MaterialViewIn, principal: CurrentUser, repo: Repo) -> JSONResponse:
    material = progress_items.new_material_view(
        material_id=body.materialId, title=body.title, time_spent=body.timeSpent
    )
    await progress_service.record_material_view(repo, principal.user_id, material)
    return envelope(
        {"material": material},
        message="Progress materi berhasil disimpan",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/video-watched", status_code=status.HTTP_201_CREATED)
async def video_watched(body: VideoWatchIn, principal: CurrentUser, repo: Repo) -> JSONResponse:
    video = progress_items.new_video_watch(
        video_id=body.videoId,
        title=body.title,
        completion_percentage=body.completionPercentage,
    )
    await progress_service.append(repo, principal.user_id, "videosWatched", video)
    return envelope(
        {"video": video},
        message="Progress video berhasil disimpan",
        status_code=status.HTTP_201_CREATED,
    )


# --- Reads -----------------------------------------------------------------


@router.get("/overview")
async def get_overview(principal: CurrentUser, repo: Repo) -> JSONResponse:
    user = await progress_service.get_overview(repo, principal.user_id)
    return envelope({"progress": user.progress, "statistics": user.statistics.to_dict()})


@router.get("/quiz")
async def get_quiz_history(principal: CurrentUser, repo: Repo) -> JSONResponse:
    items = await progress_service.list_sequence(repo, principal.user_id, "quizScores")
    return envelope({"quizScores": items})


@router.get("/assignment")
async def get_assignments(principal: CurrentUser, repo: Repo) -> JSONResponse:
    items = await progress_service.list_sequence(repo, principal.user_id, "assignments")
    return envelope({"assignments": items})


@router.get("/journal")
async def get_journal_entries(principal: CurrentUser, repo: Repo) -> JSONResponse:
    items = await progress_service.list_sequence(repo, principal.user_id, "journalEntries")
    return envelope({"journalEntries": items})


# --- Keyed updates and deletes ---------------------------------------------


@router.put("/journal/{entry_id}")
async def update_journal_entry(
    entry_id: str,
    body: JournalPatchIn,
    principal: CurrentUser,
    repo: Repo,
) -> JSONResponse:
    entry = await progress_service.update_by_key(
        repo,
        principal.user_id,
        "journalEntries",
        entry_id,
        body.model_dump(exclude_none=True),
    )
    return envelope({"journalEntry": entry}, message="Journal entry berhasil diperbarui")


@router.delete("/journal/{entry_id}")
async def delete_journal_entry(entry_id: str, principal: CurrentUser, repo: Repo) -> JSONResponse:
    await progress_service.delete_by_key(repo, principal.user_id, "journalEntries", entry_id)
    return envelope({}, message="Journal entry berhasil dihapus")


@router.put("/assignment/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    body: AssignmentPatchIn,
    principal: CurrentUser,
    repo: Repo,
) -> JSONResponse:
    assignment = await progress_service.update_by_key(
        repo,
        principal.user_id,
        "assignments",
        assignment_id,
        body.model_dump(exclude_none=True),
    )
    return envelope({"assignment": assignment}, message="Assignment berhasil diperbarui")


@router.delete("/assignment/{assignment_id}")
async def delete_assignment(
    assignment_id: str, principal: CurrentUser, repo: Repo
) -> JSONResponse:
    await progress_service.delete_by_key(repo, principal.user_id, "assignments", assignment_id)
    return envelope({}, message="Assignment berhasil dihapus")
