"""Demo: register, log in, record progress, read the overview, then go offline.

Runs against the in-memory store, so no database is needed.  The last
step points the client adapter at an unreachable server to show the
local fallback.

Run with:
    python scripts/demo_progress_flow.py
"""

from __future__ import annotations

import asyncio

import httpx
from fastapi.testclient import TestClient

from app.client.api import ApiClient, ClientConfig
from app.client.mirror import LocalMirror
from app.client.progress_client import ProgressClient
from app.client.storage import InMemoryStorage
from app.main import app

STUDENT = {
    "name": "Demo Mahasiswa",
    "email": "demo@example.com",
    "password": "demo-pass",
    "nim": "2024000001",
    "kelas": "TI-1A",
    "gender": "L",
}


def _connection_refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


async def _offline_quiz() -> None:
    mirror = LocalMirror(InMemoryStorage())
    transport = httpx.MockTransport(_connection_refused)
    async with ApiClient(mirror, ClientConfig(), transport=transport) as api:
        result = await ProgressClient(api, mirror).save_quiz_score(18, 20)
    print(
        f"7. save_quiz_score (offline)      → {result.outcome.value}  "
        f"quizId={result.item['quizId']}  queued={len(mirror.queue('quizScores'))}  "
        f"average={result.statistics.average_quiz_score}"
    )


def main() -> None:
    with TestClient(app) as client:
        # ── Step 1: register ────────────────────────────────────────────
        r = client.post("/api/auth/register", json=STUDENT)
        print(f"1. POST /api/auth/register        → {r.status_code}  {r.json()['message']}")

        # ── Step 2: register again (duplicate email) ────────────────────
        r = client.post("/api/auth/register", json=STUDENT)
        print(f"2. POST /api/auth/register (dup)  → {r.status_code}  {r.json()['message']}")

        # ── Step 3: log in ──────────────────────────────────────────────
        r = client.post(
            "/api/auth/login",
            json={"email": STUDENT["email"], "password": STUDENT["password"]},
        )
        token = r.json()["data"]["token"]
        auth = {"Authorization": f"Bearer {token}"}
        print(f"3. POST /api/auth/login           → {r.status_code}  token={token[:20]}…")

        # ── Step 4: two quiz results ────────────────────────────────────
        for score in (15, 20):
            r = client.post("/api/progress/quiz", json={"score": score, "maxScore": 20}, headers=auth)
            stats = r.json()["data"]["statistics"]
            print(
                f"4. POST /api/progress/quiz {score}/20  → {r.status_code}  "
                f"attempts={stats['totalQuizAttempts']} average={stats['averageQuizScore']}"
            )

        # ── Step 5: journal entry, then edit it ─────────────────────────
        r = client.post(
            "/api/progress/journal",
            json={"entryId": "entry_demo", "content": "Praktikum 1", "tags": ["lab"]},
            headers=auth,
        )
        print(f"5. POST /api/progress/journal     → {r.status_code}")
        r = client.put(
            "/api/progress/journal/entry_demo",
            json={"content": "Praktikum 1 (revisi)"},
            headers=auth,
        )
        print(f"   PUT  /api/progress/journal/…   → {r.status_code}  {r.json()['data']['journalEntry']['content']}")

        # ── Step 6: material views accumulate study time ────────────────
        for minutes in (10, 5):
            client.post("/api/progress/material-viewed", json={"timeSpent": minutes}, headers=auth)
        r = client.get("/api/progress/overview", headers=auth)
        data = r.json()["data"]
        print(
            f"6. GET  /api/progress/overview    → {r.status_code}  "
            f"totalStudyTime={data['statistics']['totalStudyTime']}  "
            f"sequences={ {k: len(v) for k, v in data['progress'].items()} }"
        )

        r = client.get("/api/progress/overview")
        print(f"   GET  /api/progress/overview (no token) → {r.status_code}  {r.json()['message']}")

    # ── Step 7: server unreachable, client commits locally ──────────────
    asyncio.run(_offline_quiz())

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
