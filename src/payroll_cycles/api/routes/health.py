"""Liveness, readiness and health checks."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from payroll_cycles import __version__
from payroll_cycles.api.dependencies import DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    database: str


async def database_reachable(db: DbSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database check failed: %s", e)
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Always 200; reports "degraded" when the database is unreachable."""
    reachable = await database_reachable(db)
    return HealthResponse(
        status="healthy" if reachable else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database="healthy" if reachable else "unhealthy",
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """503 until the database answers, so traffic is held back."""
    if not await database_reachable(db):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
