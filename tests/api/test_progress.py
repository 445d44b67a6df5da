"""Tests for the /api/progress endpoints."""

from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient

from app.models.progress import SEQUENCES
from app.repos.user_repo import InMemoryUserRepo
from tests.conftest import register

# ---- 401: unauthenticated ----


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("post", "/api/progress/quiz"),
        ("post", "/api/progress/assignment"),
        ("post", "/api/progress/journal"),
        ("post", "/api/progress/material-viewed"),
        ("post", "/api/progress/video-watched"),
        ("get", "/api/progress/overview"),
        ("delete", "/api/progress/journal/entry_1"),
    ],
)
def test_progress_rejects_missing_token(client: TestClient, method: str, path: str) -> None:
    resp = client.request(method.upper(), path, json={"score": 1})
    assert resp.status_code == 401
    body = resp.json()
    assert body == {"success": False, "message": "Token tidak ditemukan"}
    assert resp.headers["www-authenticate"] == "Bearer"


def test_progress_rejects_garbage_token(client: TestClient) -> None:
    resp = client.get(
        "/api/progress/overview", headers={"Authorization": "Bearer total-garbage"}
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token tidak valid"


# ---- overview ----


def test_overview_of_new_user_has_five_empty_sequences(
    client: TestClient, auth: dict[str, str]
) -> None:
    resp = client.get("/api/progress/overview", headers=auth)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["progress"] == {name: [] for name in SEQUENCES}
    assert data["statistics"] == {
        "totalQuizAttempts": 0,
        "averageQuizScore": 0,
        "totalStudyTime": 0,
        "streakDays": 0,
    }


def test_overview_404_when_user_was_removed(
    client: TestClient, auth: dict[str, str], user_repo: InMemoryUserRepo
) -> None:
    user_repo.clear()
    resp = client.get("/api/progress/overview", headers=auth)
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "User tidak ditemukan"}


# ---- quiz ----


def test_quiz_result_is_stored_and_statistics_recomputed(
    client: TestClient, auth: dict[str, str]
) -> None:
    first = client.post(
        "/api/progress/quiz", json={"score": 15, "maxScore": 20}, headers=auth
    )
    assert first.status_code == 201
    body = first.json()
    assert body["success"] is True
    assert body["message"] == "Hasil quiz berhasil disimpan"
    assert body["data"]["quizResult"]["percentage"] == 75

    second = client.post(
        "/api/progress/quiz", json={"score": 20, "maxScore": 20}, headers=auth
    )
    data = second.json()["data"]
    assert data["statistics"] == {"totalQuizAttempts": 2, "averageQuizScore": 88}
    assert [q["percentage"] for q in data["progress"]["quizScores"]] == [75, 100]


def test_quiz_defaults(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.post("/api/progress/quiz", json={"score": 10}, headers=auth)
    result = resp.json()["data"]["quizResult"]
    assert re.fullmatch(r"quiz_\d+", result["quizId"])
    assert result["maxScore"] == 20
    assert result["percentage"] == 50
    assert result["answers"] == []
    assert result["completedAt"].endswith("Z")


def test_quiz_keeps_caller_supplied_fields(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.post(
        "/api/progress/quiz",
        json={
            "quizId": "main-quiz",
            "score": 3,
            "maxScore": 4,
            "answers": ["a", "c", "b", "d"],
            "completedAt": "2025-01-02T03:04:05Z",
        },
        headers=auth,
    )
    result = resp.json()["data"]["quizResult"]
    assert result == {
        "quizId": "main-quiz",
        "score": 3,
        "maxScore": 4,
        "percentage": 75,
        "answers": ["a", "c", "b", "d"],
        "completedAt": "2025-01-02T03:04:05Z",
    }


def test_quiz_requires_score(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.post("/api/progress/quiz", json={"maxScore": 20}, headers=auth)
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "score" in resp.json()["message"]


def test_quiz_history(client: TestClient, auth: dict[str, str]) -> None:
    client.post("/api/progress/quiz", json={"quizId": "q1", "score": 1}, headers=auth)
    client.post("/api/progress/quiz", json={"quizId": "q2", "score": 2}, headers=auth)
    resp = client.get("/api/progress/quiz", headers=auth)
    assert resp.status_code == 200
    assert [q["quizId"] for q in resp.json()["data"]["quizScores"]] == ["q1", "q2"]


# ---- assignments ----


def test_assignment_defaults(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.post("/api/progress/assignment", json={}, headers=auth)
    assert resp.status_code == 201
    assignment = resp.json()["data"]["assignment"]
    assert re.fullmatch(r"assignment_\d+", assignment["assignmentId"])
    assert assignment["title"] == "Tugas Tanpa Judul"
    assert assignment["files"] == []
    assert assignment["status"] == "submitted"
    assert "submittedAt" in assignment


def test_assignment_update_and_delete(client: TestClient, auth: dict[str, str]) -> None:
    client.post(
        "/api/progress/assignment",
        json={"assignmentId": "a1", "title": "Laporan", "files": ["laporan.pdf"]},
        headers=auth,
    )

    resp = client.put(
        "/api/progress/assignment/a1", json={"status": "graded"}, headers=auth
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]["assignment"]
    assert updated["status"] == "graded"
    assert updated["title"] == "Laporan"
    assert updated["files"] == ["laporan.pdf"]

    resp = client.delete("/api/progress/assignment/a1", headers=auth)
    assert resp.status_code == 200
    assert resp.json()["data"] == {}

    resp = client.get("/api/progress/assignment", headers=auth)
    assert resp.json()["data"]["assignments"] == []


def test_assignment_update_unknown_key_is_404(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.put(
        "/api/progress/assignment/missing", json={"status": "graded"}, headers=auth
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Item tidak ditemukan"


def test_assignment_patch_rejects_unlisted_fields(
    client: TestClient, auth: dict[str, str]
) -> None:
    client.post("/api/progress/assignment", json={"assignmentId": "a1"}, headers=auth)
    resp = client.put(
        "/api/progress/assignment/a1",
        json={"assignmentId": "hijacked"},
        headers=auth,
    )
    assert resp.status_code == 400
    items = client.get("/api/progress/assignment", headers=auth).json()["data"]["assignments"]
    assert items[0]["assignmentId"] == "a1"


# ---- journal ----


def test_journal_round_trip_restores_sequence(client: TestClient, auth: dict[str, str]) -> None:
    before = client.get("/api/progress/journal", headers=auth).json()["data"]["journalEntries"]

    created = client.post(
        "/api/progress/journal",
        json={"content": "Hari pertama praktikum", "tags": ["lab"]},
        headers=auth,
    )
    assert created.status_code == 201
    entry = created.json()["data"]["journalEntry"]
    assert re.fullmatch(r"entry_\d+", entry["entryId"])

    updated = client.put(
        f"/api/progress/journal/{entry['entryId']}",
        json={"content": "Revisi"},
        headers=auth,
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["journalEntry"]["content"] == "Revisi"
    assert updated.json()["data"]["journalEntry"]["tags"] == ["lab"]

    deleted = client.delete(f"/api/progress/journal/{entry['entryId']}", headers=auth)
    assert deleted.status_code == 200

    after = client.get("/api/progress/journal", headers=auth).json()["data"]["journalEntries"]
    assert after == before


def test_journal_delete_unknown_key_is_idempotent(
    client: TestClient, auth: dict[str, str]
) -> None:
    client.post("/api/progress/journal", json={"entryId": "keep"}, headers=auth)
    for _ in range(2):
        resp = client.delete("/api/progress/journal/never-existed", headers=auth)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
    entries = client.get("/api/progress/journal", headers=auth).json()["data"]["journalEntries"]
    assert [e["entryId"] for e in entries] == ["keep"]


def test_journal_update_unknown_key_is_404(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.put("/api/progress/journal/missing", json={"content": "x"}, headers=auth)
    assert resp.status_code == 404


# ---- materials and videos ----


def test_material_view_accumulates_study_time(client: TestClient, auth: dict[str, str]) -> None:
    first = client.post(
        "/api/progress/material-viewed", json={"title": "Modul 1", "timeSpent": 10}, headers=auth
    )
    assert first.status_code == 201
    assert first.json()["data"]["material"]["timeSpent"] == 10
    client.post("/api/progress/material-viewed", json={"timeSpent": 5}, headers=auth)

    data = client.get("/api/progress/overview", headers=auth).json()["data"]
    assert data["statistics"]["totalStudyTime"] == 15
    assert len(data["progress"]["materialsViewed"]) == 2
    assert data["progress"]["materialsViewed"][1]["title"] == "Materi Tanpa Judul"


def test_video_watched(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.post(
        "/api/progress/video-watched",
        json={"videoId": "v1", "completionPercentage": 80},
        headers=auth,
    )
    assert resp.status_code == 201
    video = resp.json()["data"]["video"]
    assert video["videoId"] == "v1"
    assert video["title"] == "Video Tanpa Judul"
    assert video["completionPercentage"] == 80
    assert "watchedAt" in video


def test_non_quiz_mutations_leave_quiz_statistics_alone(
    client: TestClient, auth: dict[str, str]
) -> None:
    client.post("/api/progress/quiz", json={"score": 20, "maxScore": 20}, headers=auth)
    client.post("/api/progress/journal", json={"content": "x"}, headers=auth)
    client.post("/api/progress/video-watched", json={}, headers=auth)
    stats = client.get("/api/progress/overview", headers=auth).json()["data"]["statistics"]
    assert stats["totalQuizAttempts"] == 1
    assert stats["averageQuizScore"] == 100


# ---- isolation ----


def test_progress_is_per_user(client: TestClient, auth: dict[str, str]) -> None:
    other = register(client, email="budi@example.com", nim="2024002")
    other_auth = {"Authorization": f"Bearer {other['token']}"}

    client.post("/api/progress/journal", json={"content": "milik siti"}, headers=auth)
    entries = client.get("/api/progress/journal", headers=other_auth).json()["data"]
    assert entries["journalEntries"] == []
