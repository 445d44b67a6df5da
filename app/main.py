from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.health import SERVICE_NAME, SERVICE_VERSION
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.profile import router as profile_router
from app.api.progress import router as progress_router
from app.api.register import router as register_router
from app.api.responses import install_error_handlers
from app.core.config import SETTINGS, Settings
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import (
    RequestContextMiddleware,
    install_log_context_filter,
)
from app.repos.user_repo import InMemoryUserRepo

logger = logging.getLogger(__name__)


def create_app(settings: Settings = SETTINGS) -> FastAPI:
    """Build the application.  Store connections are opened in the lifespan."""
    setup_logging(settings.log_level, json_format=settings.log_json)
    install_log_context_filter()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        async with lifespan_db(settings.database_url) as database:
            app.state.database = database
            logger.info(
                "%s started  env=%s store=%s port=%d",
                SERVICE_NAME,
                settings.app_env,
                "postgres" if database is not None else "memory",
                settings.port,
            )
            try:
                yield
            finally:
                app.state.database = None

    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.settings = settings
    app.state.database = None
    app.state.user_repo = InMemoryUserRepo()

    # Browser clients hold a bearer token, not cookies.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware execution order: last-added runs first (outermost layer).
    # RequestContext (outermost) → Metrics → CORS → route handler
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    install_error_handlers(app)

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(register_router)
    app.include_router(profile_router)
    app.include_router(progress_router)

    return app


app = create_app()
