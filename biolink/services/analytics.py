"""Analytics service.

This module contains the AnalyticsService class which aggregates the
durable click history of a link for its owner, and the AnalyticsCache that
keeps recent results in Redis for a short time.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.config import settings
from biolink.repositories.base import RepositoryError
from biolink.repositories.click_repository import ClickEventRepository
from biolink.repositories.link_repository import LinkRepository
from biolink.services.click_queue import ClickQueue
from biolink.services.exceptions import AnalyticsRetrievalError, LinkNotFoundError

logger = logging.getLogger(__name__)


class AnalyticsCache:
    """
    Short-lived cache of computed analytics, keyed per link.

    Read and write failures are logged and reported as a miss; the cache is
    never required for a correct answer.
    """

    def __init__(
        self,
        client: redis.Redis,
        ttl: Optional[int] = None,
        prefix: Optional[str] = None,
    ):
        self.client = client
        self.ttl = ttl or settings.ANALYTICS_CACHE_TTL
        self.prefix = prefix or settings.ANALYTICS_CACHE_KEY_PREFIX

    def key(self, link_id: str) -> str:
        return f"{self.prefix}{link_id}"

    async def get(self, link_id: str) -> Optional[Dict[str, Any]]:
        try:
            cached = await self.client.get(self.key(link_id))
        except RedisError as e:
            logger.warning(f"Analytics cache read failed for link {link_id}: {e}")
            return None
        if cached is None:
            return None
        try:
            return json.loads(cached)
        except ValueError:
            logger.warning(f"Ignoring corrupt analytics cache entry for link {link_id}")
            return None

    async def set(self, link_id: str, payload: Dict[str, Any]) -> None:
        try:
            await self.client.set(self.key(link_id), json.dumps(payload), ex=self.ttl)
        except RedisError as e:
            logger.warning(f"Analytics cache write failed for link {link_id}: {e}")


class AnalyticsService:
    """
    Service for per-link click analytics.

    All figures come from the durable store, so they trail the live counter
    by up to one sync interval.
    """

    def __init__(self, link_repository: LinkRepository, click_repository: ClickEventRepository):
        self.link_repository = link_repository
        self.click_repository = click_repository

    async def get_analytics(
        self,
        db: AsyncSession,
        link_id: str,
        user_id: str,
        cache: Optional[AnalyticsCache] = None,
        queue: Optional[ClickQueue] = None,
    ) -> Dict[str, Any]:
        """
        Build the analytics summary for one of the user's links.

        Ownership is verified before the cache is consulted.

        Args:
            db: Database session
            link_id: Link to report on
            user_id: Requesting user
            cache: Optional result cache
            queue: Optional click buffer, used for the live counter

        Returns:
            Dictionary with totalClicks, liveClicks, dailySeries, devices,
            referrers and locations

        Raises:
            LinkNotFoundError: If the link does not exist or belongs to someone else
            AnalyticsRetrievalError: If aggregation failed
        """
        try:
            link = await self.link_repository.get_owned(db, link_id, user_id)
        except RepositoryError as e:
            logger.error(f"Error loading link {link_id} for analytics: {e}")
            raise AnalyticsRetrievalError(f"Failed to load link: {e}") from e

        if link is None:
            raise LinkNotFoundError(f"Link '{link_id}' not found")

        if cache is not None:
            cached = await cache.get(link_id)
            if cached is not None:
                return cached

        try:
            daily = await self.click_repository.get_daily_clicks(
                db, link_id, days=settings.ANALYTICS_WINDOW_DAYS
            )
            devices = await self.click_repository.get_clicks_by_device(db, link_id)
            referrers = await self.click_repository.get_referrer_stats(
                db, link_id, limit=settings.ANALYTICS_TOP_LIMIT
            )
            locations = await self.click_repository.get_clicks_by_country(
                db, link_id, limit=settings.ANALYTICS_TOP_LIMIT
            )
        except RepositoryError as e:
            logger.error(f"Error aggregating analytics for link {link_id}: {e}")
            raise AnalyticsRetrievalError(f"Failed to aggregate analytics: {e}") from e

        payload = {
            "totalClicks": link.clicks,
            "liveClicks": await self._live_clicks(queue, link_id),
            "dailySeries": daily,
            "devices": devices,
            "referrers": referrers,
            "locations": locations,
        }

        if cache is not None:
            await cache.set(link_id, payload)
        return payload

    async def _live_clicks(self, queue: Optional[ClickQueue], link_id: str) -> Optional[int]:
        if queue is None:
            return None
        try:
            return await queue.get_live_count(link_id)
        except RedisError as e:
            logger.warning(f"Live counter unavailable for link {link_id}: {e}")
            return None
