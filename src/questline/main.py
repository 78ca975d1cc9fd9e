"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from questline.assignments.router import router as assignments_router
from questline.config import get_settings
from questline.database import close_db, init_db
from questline.health.router import router as health_router
from questline.middleware import setup_middleware
from questline.ranking.router import router as ranking_router
from questline.storage.router import router as uploads_router
from questline.storage.service import local_mount_path
from questline.tasks.router import router as tasks_router
from questline.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("startup", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    logger.info("shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Questline API",
        description="Progression engine for tasks, referrals and leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(tasks_router)
    app.include_router(ranking_router)
    app.include_router(assignments_router)
    app.include_router(uploads_router)

    mount_path = local_mount_path()
    if mount_path:
        # Serves the URLs LocalBlobStorage hands out.
        app.mount(mount_path, StaticFiles(directory=settings.storage_local_dir, check_dir=False), name="uploads")

    return app


app = create_app()
