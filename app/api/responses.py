"""Uniform JSON envelope and error-to-status mapping.

Every response body is ``{success, message?, data?}``.  Errors raised
anywhere below the routers (AppError subclasses, request validation,
unknown routes, store failures) are rendered here, so handlers never
build error responses themselves.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import AppError, UnexpectedError

logger = logging.getLogger(__name__)


def envelope(
    data: Any = None,
    *,
    message: str | None = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return JSONResponse(jsonable_encoder(body), status_code=status_code)


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        {"success": False, "message": message},
        status_code=status_code,
        headers=headers,
    )


async def _app_error(_request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_response(exc.status_code, exc.message, headers)


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted(
        {".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors()}
    )
    logger.warning("Request validation failed: fields=%s", fields)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        f"Data tidak valid: {', '.join(fields)}",
    )


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request gagal"
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Endpoint not found"
    return error_response(exc.status_code, message, getattr(exc, "headers", None))


async def _store_error(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Store failure: %s", exc, exc_info=exc)
    return await _app_error(_request, UnexpectedError(str(exc)))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _store_error)  # type: ignore[arg-type]
