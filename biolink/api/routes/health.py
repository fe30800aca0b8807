"""Health check endpoints for monitoring application status."""

import time
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.api.dependencies import get_redis_manager, get_scheduler
from biolink.core.config import settings
from biolink.core.redis import RedisClientManager
from biolink.db.base import DatabaseHealthCheck
from biolink.db.session import get_db
from biolink.scheduler import SchedulerService
from biolink.services.click_queue import ClickQueue

router = APIRouter(tags=["health"])


async def _check_redis(manager: Optional[RedisClientManager]) -> dict:
    if manager is None:
        return {"status": "unavailable", "error": "Redis is not configured"}

    start_time = time.time()
    if not await manager.ping():
        return {"status": "unhealthy", "error": "Redis ping failed"}
    latency = round((time.time() - start_time) * 1000, 2)

    try:
        backlog = await ClickQueue(await manager.get_client()).length()
    except RedisError as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "latency_ms": latency, "queue_length": backlog}


def _check_scheduler(scheduler: Optional[SchedulerService]) -> dict:
    if scheduler is None:
        return {"status": "disabled"}
    status_info = scheduler.get_status()
    return {"status": "running" if status_info["running"] else "stopped", **status_info}


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Get system health status",
    response_description="Health status of the database and the click buffer"
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    redis_manager: Optional[RedisClientManager] = Depends(get_redis_manager),
    scheduler: Optional[SchedulerService] = Depends(get_scheduler),
):
    """Check health of all system components. The scheduler is reported but never degrades the status."""
    database = await DatabaseHealthCheck.check_connection(db)
    redis = await _check_redis(redis_manager)

    healthy = database["status"] == "healthy" and redis["status"] == "healthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "components": {
            "database": database,
            "redis": redis,
            "scheduler": _check_scheduler(scheduler),
        },
    }


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    response_description="Application readiness status"
)
async def readiness_probe(db: AsyncSession = Depends(get_db)):
    """Ready once the database answers. Redis is not required to serve redirects."""
    database = await DatabaseHealthCheck.check_connection(db)
    components_status = {"api": True, "database": database["status"] == "healthy"}
    is_ready = all(components_status.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ready": is_ready, "components": components_status},
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    response_description="Application liveness status"
)
async def liveness_probe():
    """Simple check that application is running."""
    return {"alive": True}
