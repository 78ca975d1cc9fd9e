"""Health endpoints for the orchestrator: liveness, readiness and build info."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from questline.config import get_settings
from questline.database import get_session

router = APIRouter()

# name -> statement; the schema check fails until migrations have run.
READINESS_CHECKS = {
    "database": "SELECT 1",
    "schema": "SELECT 1 FROM users LIMIT 1",
}


async def _run_check(db: AsyncSession, statement: str) -> str:
    try:
        await db.execute(text(statement))
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    """Process is up. Never touches the store."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    checks = {name: await _run_check(db, statement) for name, statement in READINESS_CHECKS.items()}
    status = "ready" if all(result == "ok" for result in checks.values()) else "degraded"
    return {"status": status, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
