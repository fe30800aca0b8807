"""Click endpoint: redirect first, track after the response."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import RedirectResponse

from biolink.api.dependencies import get_click_queue, get_click_recorder
from biolink.db.session import get_db
from biolink.repositories.base import RepositoryError
from biolink.services.click_queue import ClickQueue
from biolink.services.exceptions import LinkNotFoundError
from biolink.services.tracking import ClickRecorder

router = APIRouter(tags=["click"])


@router.get(
    "/link/{link_id}/click",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    responses={404: {"description": "Link not found"}},
)
async def handle_click(
    request: Request,
    background_tasks: BackgroundTasks,
    link_id: str,
    db: AsyncSession = Depends(get_db),
    recorder: ClickRecorder = Depends(get_click_recorder),
    queue: Optional[ClickQueue] = Depends(get_click_queue),
):
    """Redirect to the link destination and buffer the click as a background task."""
    track = True
    try:
        url = await recorder.resolve_destination(db, link_id)
    except LinkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RepositoryError as e:
        logger.warning(f"Primary lookup failed for link {link_id}, retrying untracked: {e}")
        track = False
        try:
            url = await recorder.resolve_destination_untracked(link_id)
        except LinkNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except RepositoryError as e:
            raise HTTPException(status_code=500, detail=f"Redirect error: {e}")

    if track and queue is not None:
        # Only the headers are handed over; the request object is gone by then
        background_tasks.add_task(
            recorder.record_click,
            queue,
            link_id,
            dict(request.headers),
        )

    return RedirectResponse(url=url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
