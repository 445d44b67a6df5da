"""JWT access token creation and validation (HS256).

Tokens carry the user id in ``sub``.  The signing key and lifetime are
the app's Settings (JWT_SECRET, JWT_EXPIRE_DAYS), passed in by the
handlers; the secret is shared by every handler instance, so tokens
survive restarts and scale-out.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt

ALGORITHM = "HS256"
ISSUER = "virtual-lab-api"
AUDIENCE = "virtual-lab"


def create_access_token(*, sub: str, secret: str, expires_in: timedelta) -> str:
    """Build and sign an access token for user ``sub``."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + expires_in,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, *, secret: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to prevent alg:none and alg-switching attacks.
    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
