"""Health and readiness endpoints.

  /health, /api/health (liveness):
    "Is this process alive?"  Always 200 while the process can respond.
    The body identifies the service and its version.

  /ready (readiness):
    "Can this instance handle traffic right now?"  503 when a configured
    database does not answer ``SELECT 1``.  Without a DATABASE_URL the
    in-memory store is always available, so readiness passes.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request, Response, status

from app.db.engine import Database

SERVICE_NAME = "Virtual Lab API"
SERVICE_VERSION = "1.0.0"

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/api/health")
async def health() -> dict:
    return {
        "status": "OK",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


@router.get("/ready")
async def ready(request: Request) -> Response:
    """Readiness probe.  Returns 200, or 503 if the store is unreachable."""
    database: Database | None = request.app.state.database
    if database is not None and not await database.ping():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
