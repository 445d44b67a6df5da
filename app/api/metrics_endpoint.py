"""Prometheus metrics endpoint.

Returns plain text in Prometheus exposition format, NOT the JSON
envelope the rest of the API uses.

Example output:
  # HELP progress_mutations_total Progress document mutations
  # TYPE progress_mutations_total counter
  progress_mutations_total{sequence="quizScores",operation="append"} 12.0
  http_requests_total{method="POST",endpoint="/api/auth/login",status_code="401"} 3.0
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
