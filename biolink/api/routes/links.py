"""Link management endpoints for the page owner."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.api import schemas
from biolink.api.dependencies import get_current_user_id, get_link_service
from biolink.db.session import get_db
from biolink.services.exceptions import (
    InvalidLinkPasswordError,
    LinkNotFoundError,
    LinkReorderError,
    LinkUpdateError,
)
from biolink.services.links import LinkService

router = APIRouter(tags=["links"])


@router.get("/link", response_model=List[schemas.LinkResponse])
async def list_links(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        links = await link_service.list_links(db, user_id)
        return [schemas.LinkResponse.model_validate(link) for link in links]
    except LinkUpdateError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/link",
    response_model=schemas.LinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": schemas.ErrorResponse, "description": "Concurrent creation conflict"}},
)
async def create_link(
    link_data: schemas.LinkCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        link = await link_service.create_link(db, user_id, link_data, password=link_data.password)
        return schemas.LinkResponse.model_validate(link)
    except LinkUpdateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch(
    "/link/reorder",
    response_model=List[schemas.LinkResponse],
    responses={400: {"model": schemas.ErrorResponse, "description": "Invalid ordering"}},
)
async def reorder_links(
    reorder: schemas.ReorderRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    """Move several links to new positions at once."""
    try:
        links = await link_service.reorder_links(
            db, user_id, [(item.id, item.sort_order) for item in reorder.orders]
        )
        return [schemas.LinkResponse.model_validate(link) for link in links]
    except LinkReorderError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/link/{link_id}",
    response_model=schemas.LinkResponse,
    responses={404: {"model": schemas.ErrorResponse, "description": "Link not found"}},
)
async def get_link(
    link_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        link = await link_service.get_link(db, user_id, link_id)
        return schemas.LinkResponse.model_validate(link)
    except LinkNotFoundError:
        raise HTTPException(status_code=404, detail="Link not found")
    except LinkUpdateError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch(
    "/link/{link_id}",
    response_model=schemas.LinkResponse,
    responses={404: {"model": schemas.ErrorResponse, "description": "Link not found"}},
)
async def update_link(
    link_id: str,
    changes: schemas.LinkUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        link = await link_service.update_link(
            db, user_id, link_id, changes.model_dump(exclude_unset=True)
        )
        return schemas.LinkResponse.model_validate(link)
    except LinkNotFoundError:
        raise HTTPException(status_code=404, detail="Link not found")
    except LinkUpdateError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete(
    "/link/{link_id}",
    response_model=schemas.DeleteResponse,
    responses={404: {"model": schemas.ErrorResponse, "description": "Link not found"}},
)
async def delete_link(
    link_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        await link_service.delete_link(db, user_id, link_id)
        return schemas.DeleteResponse(success=True)
    except LinkNotFoundError:
        raise HTTPException(status_code=404, detail="Link not found")
    except LinkUpdateError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/link/{link_id}/unlock",
    response_model=schemas.UnlockResponse,
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Incorrect password"},
        404: {"model": schemas.ErrorResponse, "description": "Link not found"},
    },
)
async def unlock_link(
    link_id: str,
    unlock: schemas.UnlockRequest,
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    """Exchange the password of a protected link for its click URL. No session needed."""
    try:
        url = await link_service.unlock_link(db, link_id, unlock.password)
        return schemas.UnlockResponse(url=url)
    except LinkNotFoundError:
        raise HTTPException(status_code=404, detail="Link not found")
    except InvalidLinkPasswordError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except LinkUpdateError as e:
        raise HTTPException(status_code=500, detail=str(e))
