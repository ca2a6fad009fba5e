"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.config import get_settings
from boreview.db.models import Badge, DailyTask
from boreview.dependencies import get_db
from boreview.redis_client import redis_status

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> dict[str, object]:
    """Ready once the database answers. Redis is optional and may report ``disabled``.

    ``seed`` shows whether the badge and daily-task catalogues were loaded;
    gamification endpoints return empty lists until they are.
    """
    checks: dict[str, str] = {}

    try:
        badges = await db.scalar(select(func.count(Badge.id)))
        tasks = await db.scalar(select(func.count(DailyTask.id)))
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc}"
        checks["seed"] = "unknown"
    else:
        checks["database"] = "ok"
        checks["seed"] = "ok" if badges and tasks else "missing"

    checks["redis"] = await redis_status()

    ready = checks["database"] == "ok" and not checks["redis"].startswith("error")
    if not ready:
        response.status_code = 503
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
