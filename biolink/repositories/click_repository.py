"""Click event repository.

This module provides the ClickEventRepository class for database operations related
to ClickEvent models: bulk insertion by the sync worker and the aggregation
queries behind the analytics dashboard.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import desc, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import and_

from biolink.models.click import ClickEvent, ClickEventCreate, ClickEventRead
from biolink.repositories.base import BaseRepository, RepositoryError


class ClickEventRepository(BaseRepository[ClickEvent, ClickEventCreate, ClickEventRead]):
    """
    Repository for ClickEvent model database operations.

    The grouped queries all return plain dictionaries shaped for the API,
    ordered by count descending. Ties are broken by the group value so
    results are stable between calls.
    """

    def __init__(self):
        super().__init__(ClickEvent)

    async def create_click_events_batch(
        self,
        db: AsyncSession,
        events_data: List[Union[ClickEventCreate, Dict[str, Any]]]
    ) -> int:
        """
        Insert many click events with a single INSERT statement.

        Args:
            db: Database session
            events_data: Click event rows

        Returns:
            Number of rows inserted

        Raises:
            RepositoryError: On database errors
        """
        if not events_data:
            return 0
        try:
            values = [
                data.model_dump() if isinstance(data, ClickEventCreate) else data
                for data in events_data
            ]
            await db.execute(insert(self.model_type), values)
            return len(values)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error batch creating click events: {e}") from e

    async def get_daily_clicks(
        self,
        db: AsyncSession,
        link_id: str,
        days: int = 7,
        now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """
        Count clicks per calendar day over a trailing window.

        Only days that have clicks appear; gaps are not filled.

        Args:
            db: Database session
            link_id: Link to aggregate
            days: Size of the trailing window
            now: End of the window (defaults to the current UTC time)

        Returns:
            Mapping of ISO date string to click count, ascending by date

        Raises:
            RepositoryError: On database errors
        """
        try:
            start = (now or datetime.utcnow()) - timedelta(days=days)
            day = func.date(self.model_type.created_at)
            query = (
                select(day.label("day"), func.count().label("total"))
                .where(
                    and_(
                        self.model_type.link_id == link_id,
                        self.model_type.created_at >= start,
                    )
                )
                .group_by(day)
                .order_by(day)
            )
            result = await db.execute(query)
            return {_format_day(row.day): row.total for row in result.all()}
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving daily clicks for link {link_id}: {e}") from e

    async def _count_by(
        self,
        db: AsyncSession,
        link_id: str,
        column: Any,
        key: str,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        try:
            query = (
                select(column, func.count().label("total"))
                .where(self.model_type.link_id == link_id)
                .group_by(column)
                .order_by(desc("total"), column)
            )
            if limit is not None:
                query = query.limit(limit)

            result = await db.execute(query)
            return [{key: row[0], "count": row.total} for row in result.all()]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving click statistics by {key}: {e}") from e

    async def get_clicks_by_device(self, db: AsyncSession, link_id: str) -> List[Dict[str, Any]]:
        """
        Get click counts grouped by device class, without a limit.

        Returns:
            List of dictionaries with device and count fields
        """
        return await self._count_by(db, link_id, self.model_type.device, "device")

    async def get_referrer_stats(
        self,
        db: AsyncSession,
        link_id: str,
        limit: int = 5
    ) -> List[Dict[str, Any]]:
        """
        Get top referrers for a link.

        Returns:
            List of dictionaries with referrer and count fields
        """
        return await self._count_by(db, link_id, self.model_type.referrer, "referrer", limit)

    async def get_clicks_by_country(
        self,
        db: AsyncSession,
        link_id: str,
        limit: int = 5
    ) -> List[Dict[str, Any]]:
        """
        Get top countries for a link.

        Returns:
            List of dictionaries with country and count fields
        """
        return await self._count_by(db, link_id, self.model_type.country, "country", limit)


def _format_day(value: Union[date, str]) -> str:
    # PostgreSQL returns a date, SQLite returns the ISO string
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
