from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from app.core.config import Settings
from app.core.errors import AuthError
from app.db.engine import Database
from app.middleware.request_context import user_id_var
from app.models.principal import Principal
from app.repos.pg_user_repo import PgUserRepo
from app.repos.user_repo import UserRepo
from app.services import token_service

logger = logging.getLogger(__name__)

# auto_error=False: a missing token is reported through AuthError so it
# gets the same envelope and message as an invalid one.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_user_repo(request: Request) -> AsyncIterator[UserRepo]:
    """Yield the request's UserRepo.

    With a configured Database each request gets its own session,
    committed when the handler returns and rolled back if it raises.
    """
    database: Database | None = request.app.state.database
    if database is None:
        yield request.app.state.user_repo
        return
    async with database.session() as session:
        yield PgUserRepo(session)


async def require_user(
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    if not raw_token:
        raise AuthError("Token tidak ditemukan")
    try:
        claims = token_service.decode_access_token(raw_token, secret=settings.jwt_secret)
        user_id = UUID(str(claims["sub"]))
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise AuthError("Token kedaluwarsa") from None
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.warning("Invalid token rejected: %s", e)
        raise AuthError("Token tidak valid") from None

    user_id_var.set(str(user_id))
    return Principal(user_id=user_id, token_id=claims.get("jti"))


CurrentUser = Annotated[Principal, Depends(require_user)]
Repo = Annotated[UserRepo, Depends(get_user_repo)]
AppSettings = Annotated[Settings, Depends(get_settings)]
