"""Liveness route: the service is healthy when PostgreSQL answers."""

import time

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_database
from src.api.models import ComponentHealth, HealthResponse
from src.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _probe(db: Database) -> ComponentHealth:
    started = time.perf_counter()
    details = None
    try:
        healthy = await db.health_check()
    except Exception as e:
        healthy = False
        details = {"error": str(e)}

    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
        details=details,
    )


@router.get("/health", response_model=HealthResponse)
async def health(db: Database = Depends(get_database)) -> HealthResponse:
    """Report database reachability and probe latency."""
    database = await _probe(db)
    if database.status != "healthy":
        logger.warning("Health probe failed", component="database", details=database.details)
    return HealthResponse(status=database.status, components={"database": database})
