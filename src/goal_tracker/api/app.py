"""Application factory for the goal tracker web app.

`create_app` builds the authentication components once (session codec,
auth-state codec, provider registry), installs the error handlers that turn
authentication failures into pages and redirects, and mounts the routers.
Tests pass their own `Settings` and `AuthComponents` in.

The `goal-tracker serve` command runs it under uvicorn.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from goal_tracker.api.dependencies import AuthComponents
from goal_tracker.api.errors import register_exception_handlers
from goal_tracker.config import Settings, get_settings
from goal_tracker.database.connection import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the user database for the life of the app."""
    settings: Settings = app.state.settings

    logger.info(
        f"{settings.app_name} {settings.app_version} starting "
        f"({settings.environment})"
    )

    await init_db(settings)

    yield

    logger.info(f"{settings.app_name} stopping")
    await close_db()


def create_app(
    settings: Settings | None = None,
    auth: AuthComponents | None = None,
) -> FastAPI:
    """Build the app.

    Args:
        settings: Settings to use (default: from environment)
        auth: Prebuilt authentication components (default: from settings)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.auth = auth or AuthComponents.from_settings(settings)
    logger.info(f"SSO providers configured: {app.state.auth.registry.names}")

    register_exception_handlers(app)

    from goal_tracker.api.routes import auth as auth_routes, pages, sso

    app.include_router(pages.router, tags=["Pages"])
    app.include_router(auth_routes.router, tags=["Authentication"])
    app.include_router(sso.router, tags=["Single sign-on"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe."""
        return {"status": "healthy", "version": settings.app_version}

    return app
