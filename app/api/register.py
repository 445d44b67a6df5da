"""JSON auth endpoints: POST /api/auth/register and POST /api/auth/login.

Both return ``{user, token}`` where ``user`` carries the profile plus
the progress document and statistics, so a client can seed its local
mirror straight from the response.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.dependencies import AppSettings, Repo
from app.api.responses import envelope
from app.services import auth_service, token_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Fields are optional at the schema level so a missing one produces the
# product's own 400 message instead of a generic validation error.


class RegisterIn(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    nim: str | None = None
    kelas: str | None = None
    gender: str | None = None


class LoginIn(BaseModel):
    email: str | None = None
    password: str | None = None


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterIn, repo: Repo, settings: AppSettings) -> JSONResponse:
    user = await auth_service.register_user(
        repo,
        name=payload.name or "",
        email=payload.email or "",
        password=payload.password or "",
        nim=payload.nim or "",
        kelas=payload.kelas or "",
        gender=payload.gender or "",
    )
    token = token_service.create_access_token(
        sub=str(user.id),
        secret=settings.jwt_secret,
        expires_in=settings.token_lifetime,
    )
    return envelope(
        {"user": user.public_dict(), "token": token},
        message="Registrasi berhasil",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login")
async def login(payload: LoginIn, repo: Repo, settings: AppSettings) -> JSONResponse:
    user = await auth_service.authenticate_user(
        repo, payload.email or "", payload.password or ""
    )
    token = token_service.create_access_token(
        sub=str(user.id),
        secret=settings.jwt_secret,
        expires_in=settings.token_lifetime,
    )
    refreshed = await repo.get_by_id(user.id) or user
    return envelope(
        {"user": refreshed.public_dict(), "token": token},
        message="Login berhasil",
    )
