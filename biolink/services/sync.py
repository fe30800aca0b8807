"""Analytics sync service.

This module contains the AnalyticsSyncService class which moves buffered
clicks into the durable store: one bulk insert of click events plus one
atomic counter increment per affected link, committed together.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.config import settings
from biolink.models.click import ClickEventCreate
from biolink.repositories.click_repository import ClickEventRepository
from biolink.repositories.link_repository import LinkRepository
from biolink.services.click_queue import BufferedClickEntry, ClickQueue
from biolink.services.exceptions import AnalyticsSyncError

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data to sync"
ALL_DISCARDED_MESSAGE = "Data found in queue but all associated links were deleted"


def _sync_result(message: str, popped: int = 0, inserted: int = 0, increments: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    return {
        "message": message,
        "popped": popped,
        "inserted": inserted,
        "discarded": popped - inserted,
        "increments": increments or {},
    }


class AnalyticsSyncService:
    """
    Service draining the click buffer into the database.

    A run pops at most one batch. Entries are removed from the buffer before
    the database write, so a failed run loses that batch; it is never
    written twice.
    """

    def __init__(self, link_repository: LinkRepository, click_repository: ClickEventRepository):
        """
        Initialize the sync service.

        Args:
            link_repository: Repository for link lookups and counter increments
            click_repository: Repository for click event inserts
        """
        self.link_repository = link_repository
        self.click_repository = click_repository

    def _parse_entries(self, raw_entries: List[Any]) -> List[ClickEventCreate]:
        events = []
        for raw in raw_entries:
            try:
                events.append(BufferedClickEntry.parse(raw).to_click_event())
            except ValueError as e:
                logger.warning(f"Discarding unreadable buffered click: {e}")
        return events

    async def drain_and_sync(
        self,
        db: AsyncSession,
        queue: ClickQueue,
        batch_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Pop one batch from the buffer and persist it.

        Entries that cannot be parsed, or whose link has been deleted since
        the click, are dropped and counted as discarded.

        Args:
            db: Database session; committed by this method
            queue: Click buffer to drain
            batch_size: Maximum number of entries to pop (defaults to SYNC_BATCH_SIZE)

        Returns:
            Sync summary with message, popped, inserted, discarded and increments

        Raises:
            AnalyticsSyncError: If the buffer or the database failed
        """
        batch_size = batch_size or settings.SYNC_BATCH_SIZE

        try:
            raw_entries = await queue.pop_batch(batch_size)
        except RedisError as e:
            logger.error(f"Error reading click buffer: {e}")
            raise AnalyticsSyncError(f"Click buffer unavailable: {e}") from e

        if not raw_entries:
            return _sync_result(NO_DATA_MESSAGE)

        popped = len(raw_entries)
        events = self._parse_entries(raw_entries)

        try:
            existing_ids = await self.link_repository.get_existing_ids(
                db, {event.link_id for event in events}
            )
            valid_events = [event for event in events if event.link_id in existing_ids]

            if not valid_events:
                logger.info(f"Discarded {popped} buffered clicks with no surviving link")
                return _sync_result(ALL_DISCARDED_MESSAGE, popped=popped)

            inserted = await self.click_repository.create_click_events_batch(
                db, valid_events
            )

            increments = Counter(event.link_id for event in valid_events)
            durable_counts = {}
            for link_id, amount in increments.items():
                durable_counts[link_id] = await self.link_repository.increment_clicks(db, link_id, amount)

            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error syncing {popped} buffered clicks: {e}")
            raise AnalyticsSyncError(f"Failed to persist buffered clicks: {e}") from e

        await self._reconcile_live_counts(queue, durable_counts)

        logger.info(f"Synced {inserted} of {popped} buffered clicks across {len(increments)} links")
        return _sync_result(
            f"Synced {inserted} clicks",
            popped=popped,
            inserted=inserted,
            increments=dict(increments),
        )

    async def _reconcile_live_counts(self, queue: ClickQueue, durable_counts: Dict[str, Optional[int]]) -> None:
        for link_id, durable in durable_counts.items():
            if durable is None:
                continue
            try:
                await queue.raise_live_count(link_id, durable)
            except RedisError as e:
                logger.warning(f"Could not reconcile live counter for link {link_id}: {e}")
