"""Per-link analytics for the link owner."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.api import schemas
from biolink.api.dependencies import (
    get_analytics_cache,
    get_analytics_service,
    get_click_queue,
    get_current_user_id,
)
from biolink.db.session import get_db
from biolink.services.analytics import AnalyticsCache, AnalyticsService
from biolink.services.click_queue import ClickQueue
from biolink.services.exceptions import AnalyticsRetrievalError, LinkNotFoundError

router = APIRouter(tags=["analytics"])


@router.get(
    "/analytics/{link_id}",
    response_model=schemas.AnalyticsResponse,
    responses={
        401: {"model": schemas.ErrorResponse, "description": "No valid session"},
        404: {"model": schemas.ErrorResponse, "description": "Link not found"},
    },
)
async def get_link_analytics(
    link_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    analytics_service: AnalyticsService = Depends(get_analytics_service),
    cache: Optional[AnalyticsCache] = Depends(get_analytics_cache),
    queue: Optional[ClickQueue] = Depends(get_click_queue),
):
    try:
        return await analytics_service.get_analytics(
            db, link_id, user_id, cache=cache, queue=queue
        )
    except LinkNotFoundError:
        raise HTTPException(status_code=404, detail="Link not found")
    except AnalyticsRetrievalError as e:
        raise HTTPException(status_code=500, detail=str(e))
