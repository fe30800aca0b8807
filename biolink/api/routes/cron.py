"""Trigger endpoint for the analytics sync worker."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.api import schemas
from biolink.api.dependencies import get_click_queue, get_sync_service, verify_cron_secret
from biolink.core.config import settings
from biolink.db.session import get_db
from biolink.services.click_queue import ClickQueue
from biolink.services.exceptions import SyncError
from biolink.services.sync import AnalyticsSyncService

router = APIRouter(tags=["cron"])


def _sync_failed(details: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Sync failed", "details": details})


@router.get(
    "/cron/sync-analytics",
    response_model=schemas.SyncResponse,
    dependencies=[Depends(verify_cron_secret)],
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Missing or wrong cron secret"},
        500: {"model": schemas.SyncErrorResponse, "description": "Sync failed"},
    },
)
async def sync_analytics(
    batch_size: int = Query(
        settings.SYNC_BATCH_SIZE,
        ge=1,
        le=settings.SYNC_MAX_BATCH_SIZE,
        description="Maximum number of buffered clicks to move in this run",
    ),
    db: AsyncSession = Depends(get_db),
    queue: Optional[ClickQueue] = Depends(get_click_queue),
    sync_service: AnalyticsSyncService = Depends(get_sync_service),
):
    """Drain one batch of buffered clicks into the database."""
    if queue is None:
        return _sync_failed("Click buffer is not configured")

    try:
        return await sync_service.drain_and_sync(db, queue, batch_size)
    except SyncError as e:
        logger.error(f"Analytics sync failed: {e}")
        return _sync_failed(str(e))
