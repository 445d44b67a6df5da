from __future__ import annotations

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.models.progress import (
    PATCHABLE_FIELDS,
    SEQUENCE_KEY_FIELDS,
    Statistics,
    append_item,
    empty_progress,
    find_item,
    key_field_for,
    normalize_progress,
    remove_item,
    update_item,
)


def test_key_field_table() -> None:
    assert dict(SEQUENCE_KEY_FIELDS) == {
        "quizScores": "quizId",
        "assignments": "assignmentId",
        "journalEntries": "entryId",
        "materialsViewed": "materialId",
        "videosWatched": "videoId",
    }


@pytest.mark.parametrize("sequence", list(SEQUENCE_KEY_FIELDS))
def test_key_field_is_never_patchable(sequence: str) -> None:
    assert key_field_for(sequence) not in PATCHABLE_FIELDS[sequence]


def test_key_field_for_unknown_sequence() -> None:
    with pytest.raises(ValidationError):
        key_field_for("badges")


def test_normalize_fills_missing_and_keeps_unknown() -> None:
    doc = normalize_progress({"quizScores": [{"quizId": "q"}], "legacy": [1], "assignments": None})
    assert doc["quizScores"] == [{"quizId": "q"}]
    assert doc["assignments"] == []
    assert doc["videosWatched"] == []
    assert doc["legacy"] == [1]


@pytest.mark.parametrize("raw", [None, [], "progress", 3])
def test_normalize_treats_non_mapping_as_empty(raw: object) -> None:
    assert normalize_progress(raw) == empty_progress()


def test_append_creates_absent_sequence_without_touching_input() -> None:
    original = {"quizScores": []}
    doc = append_item(original, "videosWatched", {"videoId": "v1"})
    assert doc["videosWatched"] == [{"videoId": "v1"}]
    assert original == {"quizScores": []}


def test_update_returns_new_document() -> None:
    original = append_item(empty_progress(), "journalEntries", {"entryId": "e1", "content": "a"})
    doc, updated = update_item(original, "journalEntries", "e1", {"content": "b"})
    assert updated == {"entryId": "e1", "content": "b"}
    assert find_item(doc, "journalEntries", "e1") == updated
    assert find_item(original, "journalEntries", "e1") == {"entryId": "e1", "content": "a"}


def test_update_missing_key() -> None:
    with pytest.raises(NotFoundError):
        update_item(empty_progress(), "assignments", "a1", {"status": "x"})


def test_update_rejects_field_outside_allow_list() -> None:
    doc = append_item(empty_progress(), "assignments", {"assignmentId": "a1"})
    with pytest.raises(ValidationError, match="submittedAt"):
        update_item(doc, "assignments", "a1", {"submittedAt": "yesterday"})


def test_remove_is_idempotent() -> None:
    doc = append_item(empty_progress(), "assignments", {"assignmentId": "a1"})
    once = remove_item(doc, "assignments", "a1")
    twice = remove_item(once, "assignments", "a1")
    assert once == twice == empty_progress()


# ---- Statistics ----


def test_statistics_wire_names_round_trip() -> None:
    stats = Statistics.from_dict(
        {"totalQuizAttempts": 2, "averageQuizScore": 88, "totalStudyTime": 15, "streakDays": 1}
    )
    assert stats == Statistics(2, 88, 15, 1)
    assert Statistics.from_dict(stats.to_dict()) == stats


def test_statistics_merge_overwrites_only_given_keys() -> None:
    stats = Statistics(total_quiz_attempts=1, average_quiz_score=50, total_study_time=30)
    merged = stats.merged({"totalQuizAttempts": 2, "averageQuizScore": 75})
    assert merged.total_study_time == 30
    assert merged.total_quiz_attempts == 2


def test_statistics_merge_rejects_unknown_keys() -> None:
    with pytest.raises(ValidationError):
        Statistics().merged({"isAdmin": 1})
