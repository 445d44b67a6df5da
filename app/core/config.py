from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

# Only usable outside prod; load_settings() refuses it when APP_ENV=prod.
_DEV_JWT_SECRET = "dev-only-virtual-lab-secret"


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: str, *, minimum: int = 0) -> int:
    raw = _getenv(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    jwt_secret: str = _DEV_JWT_SECRET
    jwt_expire_days: int = 7
    default_quiz_max_score: int = 20

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def token_lifetime(self) -> timedelta:
        return timedelta(days=self.jwt_expire_days)


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", "8000", minimum=1)
    log_json = _getenv("LOG_JSON", "false").lower() in ("1", "true", "yes")
    database_url = _getenv("DATABASE_URL", "") or None

    jwt_secret = _getenv("JWT_SECRET", "")
    if not jwt_secret:
        if app_env_raw == "prod":
            raise ValueError("JWT_SECRET must be set when APP_ENV=prod")
        jwt_secret = _DEV_JWT_SECRET

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        jwt_secret=jwt_secret,
        jwt_expire_days=_getenv_int("JWT_EXPIRE_DAYS", "7", minimum=1),
        default_quiz_max_score=_getenv_int("DEFAULT_QUIZ_MAX_SCORE", "20", minimum=1),
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
