"""Profile endpoints for the authenticated user.

GET    /api/auth/me        load own profile, progress and statistics
PUT    /api/auth/profile   edit name / nim / kelas / gender
PUT    /api/auth/password  change password (current password required)
POST   /api/auth/logout    stateless; the client discards its token
DELETE /api/auth/logout
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from app.api.dependencies import CurrentUser, Repo
from app.api.responses import envelope
from app.core.errors import USER_NOT_FOUND, NotFoundError
from app.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["profile"])


class UpdateProfileIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    nim: str | None = None
    kelas: str | None = None
    gender: str | None = None


class ChangePasswordIn(BaseModel):
    currentPassword: str | None = None
    newPassword: str | None = None


@router.get("/me")
async def get_my_profile(principal: CurrentUser, repo: Repo) -> JSONResponse:
    user = await repo.get_by_id(principal.user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return envelope({"user": user.public_dict()})


@router.put("/profile")
async def update_profile(
    body: UpdateProfileIn,
    principal: CurrentUser,
    repo: Repo,
) -> JSONResponse:
    user = await auth_service.update_profile(
        repo, principal.user_id, body.model_dump(exclude_unset=True)
    )
    return envelope({"user": user.public_dict()}, message="Profil berhasil diperbarui")


@router.put("/password")
async def change_password(
    body: ChangePasswordIn,
    principal: CurrentUser,
    repo: Repo,
) -> JSONResponse:
    await auth_service.change_password(
        repo,
        principal.user_id,
        body.currentPassword or "",
        body.newPassword or "",
    )
    return envelope(message="Password berhasil diubah")


@router.api_route("/logout", methods=["POST", "DELETE"])
async def logout() -> JSONResponse:
    return envelope(message="Logout berhasil")
