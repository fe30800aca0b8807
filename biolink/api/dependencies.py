"""API dependencies for FastAPI.

This module provides dependency injection functions for FastAPI endpoints
to access repositories, services, the Redis-backed click buffer and the
authenticated user.
"""

import secrets
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from biolink.core.config import settings
from biolink.core.redis import RedisClientManager
from biolink.core.security import decode_access_token
from biolink.repositories.click_repository import ClickEventRepository
from biolink.repositories.link_repository import LinkRepository
from biolink.scheduler import SchedulerService
from biolink.services.analytics import AnalyticsCache, AnalyticsService
from biolink.services.click_queue import ClickQueue
from biolink.services.links import LinkService
from biolink.services.sync import AnalyticsSyncService
from biolink.services.tracking import ClickRecorder

bearer_scheme = HTTPBearer(auto_error=False)


async def get_link_repository():
    """Get an instance of the link repository."""
    return LinkRepository()


async def get_click_repository():
    """Get an instance of the click event repository."""
    return ClickEventRepository()


async def get_link_service(
    link_repo: LinkRepository = Depends(get_link_repository),
) -> LinkService:
    """Get an instance of the link management service."""
    return LinkService(link_repository=link_repo)


async def get_click_recorder(
    link_repo: LinkRepository = Depends(get_link_repository),
) -> ClickRecorder:
    """Get an instance of the click recorder."""
    return ClickRecorder(link_repository=link_repo)


async def get_sync_service(
    link_repo: LinkRepository = Depends(get_link_repository),
    click_repo: ClickEventRepository = Depends(get_click_repository),
) -> AnalyticsSyncService:
    """Get an instance of the analytics sync service."""
    return AnalyticsSyncService(link_repository=link_repo, click_repository=click_repo)


async def get_analytics_service(
    link_repo: LinkRepository = Depends(get_link_repository),
    click_repo: ClickEventRepository = Depends(get_click_repository),
) -> AnalyticsService:
    """Get an instance of the analytics service."""
    return AnalyticsService(link_repository=link_repo, click_repository=click_repo)


def get_redis_manager(request: Request) -> Optional[RedisClientManager]:
    """Get the Redis manager created on application startup, if any."""
    return getattr(request.app.state, "redis_manager", None)


def get_scheduler(request: Request) -> Optional[SchedulerService]:
    """Get the in-process sync scheduler, if it was started."""
    return getattr(request.app.state, "scheduler", None)


async def get_redis(
    manager: Optional[RedisClientManager] = Depends(get_redis_manager),
) -> Optional[redis.Redis]:
    """Get a pooled Redis client, or None when Redis is not configured."""
    if manager is None:
        logger.warning("Redis manager not initialised; click buffer disabled")
        return None
    return await manager.get_client()


async def get_click_queue(
    client: Optional[redis.Redis] = Depends(get_redis),
) -> Optional[ClickQueue]:
    return ClickQueue(client) if client is not None else None


async def get_analytics_cache(
    client: Optional[redis.Redis] = Depends(get_redis),
) -> Optional[AnalyticsCache]:
    return AnalyticsCache(client) if client is not None else None


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Resolve the user id from the bearer session token.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload["sub"]


async def verify_cron_secret(request: Request) -> None:
    """
    Guard the sync trigger with the shared cron secret.

    The check is skipped in development so the worker can be triggered by hand.

    Raises:
        HTTPException: 401 if the Authorization header does not carry the secret
    """
    if settings.is_development:
        return

    expected = f"Bearer {settings.CRON_SECRET}"
    provided = request.headers.get("authorization", "")
    if not settings.CRON_SECRET or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
