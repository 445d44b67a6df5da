from __future__ import annotations

import logging
from collections.abc import Mapping
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from app.core.errors import (
    USER_NOT_FOUND,
    AuthError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.core.metrics import AUTH_EVENTS
from app.models.user import PROFILE_FIELDS, User
from app.repos.user_repo import EMAIL_TAKEN, NIM_TAKEN, UserRepo

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()

BAD_CREDENTIALS = "Email atau password salah"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


async def register_user(
    repo: UserRepo,
    *,
    name: str,
    email: str,
    password: str,
    nim: str,
    kelas: str,
    gender: str,
) -> User:
    """Create a user with empty progress and zeroed statistics.

    Email is checked before NIM so a double collision reports the email.
    """
    fields = {
        "name": name.strip(),
        "email": normalize_email(email),
        "nim": nim.strip(),
        "kelas": kelas.strip(),
        "gender": gender.strip(),
    }
    if not all(fields.values()) or not password:
        raise ValidationError("Semua field harus diisi")

    if await repo.get_by_email(fields["email"]) is not None:
        AUTH_EVENTS.labels(event="register", result="rejected").inc()
        logger.warning("Registration rejected: duplicate email")
        raise ConflictError(EMAIL_TAKEN, field="email")
    if await repo.get_by_nim(fields["nim"]) is not None:
        AUTH_EVENTS.labels(event="register", result="rejected").inc()
        logger.warning("Registration rejected: duplicate nim")
        raise ConflictError(NIM_TAKEN, field="nim")

    user = User.new(password_hash=hash_password(password), **fields)
    await repo.add(user)

    AUTH_EVENTS.labels(event="register", result="ok").inc()
    logger.info("User registered  user_id=%s", user.id)
    return user


async def authenticate_user(repo: UserRepo, email: str, password: str) -> User:
    """Return the user for valid credentials, else raise AuthError."""
    if not email or not password:
        raise ValidationError("Email dan password harus diisi")

    user = await repo.get_by_email(normalize_email(email))
    if user is None or not verify_password(password, user.password_hash):
        AUTH_EVENTS.labels(event="login", result="rejected").inc()
        logger.warning("Login failed")
        raise AuthError(BAD_CREDENTIALS)

    # Upgrade the stored hash when hasher parameters changed over time.
    try:
        if _ph.check_needs_rehash(user.password_hash):
            await repo.update_password_hash(user.id, _ph.hash(password))
            logger.info("Rehashed password for user=%s", user.id)
    except InvalidHash:
        raise AuthError(BAD_CREDENTIALS) from None

    await repo.touch_last_login(user.id)
    AUTH_EVENTS.labels(event="login", result="ok").inc()
    logger.info("Login succeeded  user_id=%s", user.id)
    return user


async def update_profile(
    repo: UserRepo, user_id: UUID, changes: Mapping[str, str | None]
) -> User:
    cleaned: dict[str, str] = {}
    for key, value in changes.items():
        if key not in PROFILE_FIELDS:
            raise ValidationError(f"Field tidak dapat diubah: {key}")
        if value is None:
            continue
        value = value.strip()
        if not value:
            raise ValidationError(f"{key} tidak boleh kosong")
        cleaned[key] = value

    if not cleaned:
        user = await repo.get_by_id(user_id)
    else:
        user = await repo.update_profile(user_id, cleaned)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)

    logger.info("Profile updated  user_id=%s fields=%s", user_id, sorted(cleaned))
    return user


async def change_password(
    repo: UserRepo, user_id: UUID, current_password: str, new_password: str
) -> None:
    if not current_password or not new_password:
        raise ValidationError("Password lama dan baru harus diisi")

    user = await repo.get_by_id(user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    if not verify_password(current_password, user.password_hash):
        AUTH_EVENTS.labels(event="password", result="rejected").inc()
        logger.warning("Password change rejected  user_id=%s", user_id)
        raise ValidationError("Password lama salah")

    await repo.update_password_hash(user_id, hash_password(new_password))
    AUTH_EVENTS.labels(event="password", result="ok").inc()
    logger.info("Password changed  user_id=%s", user_id)
