"""Health check endpoint.

Reports the server as available plus the reachability of Postgres and
Redis. Always 200; "status" drops to "degraded" when a dependency is
down so load balancers can still tell the process itself is alive.

Callers only ever see "ok" or "unavailable" per dependency; the reason
goes to the log.
"""

import asyncio

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from myreference import __version__
from myreference.cache import get_redis
from myreference.config import settings
from myreference.db.engine import get_db

logger = structlog.get_logger()

router = APIRouter()


@router.get("/healthcheck")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and dependency connectivity."""
    checks = {}

    try:
        async with asyncio.timeout(settings.db_timeout_seconds):
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.warning(
            "health.database_unavailable", error=str(e), error_type=type(e).__name__
        )
        checks["database"] = "unavailable"

    try:
        async with asyncio.timeout(settings.db_timeout_seconds):
            await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        logger.warning(
            "health.redis_unavailable", error=str(e), error_type=type(e).__name__
        )
        checks["redis"] = "unavailable"

    return {
        "status": "available" if all(v == "ok" for v in checks.values()) else "degraded",
        "system_info": {
            "environment": settings.environment,
            "version": __version__,
        },
        "checks": checks,
    }
