"""Application error taxonomy.

Services and repos raise these; the HTTP layer maps each class to a
status code and the ``{success: false, message}`` envelope (see
app/api/responses.py).  Messages are user-facing and stay in the
product's language.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """A required field is missing or a patch names a forbidden field."""

    status_code = 400


class AuthError(AppError):
    """Missing, invalid or expired bearer token, or bad credentials."""

    status_code = 401


class NotFoundError(AppError):
    """The user or the keyed progress item does not exist."""

    status_code = 404


class ConflictError(AppError):
    """Registration or profile update collides with an existing user.

    ``field`` names the colliding column ("email" or "nim").  Reported
    as 400 rather than 409; clients match on the message.
    """

    status_code = 400

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message)
        self.field = field


class UnexpectedError(AppError):
    """Store or transport failure; the message is passed through."""

    status_code = 500


USER_NOT_FOUND = "User tidak ditemukan"
ITEM_NOT_FOUND = "Item tidak ditemukan"
