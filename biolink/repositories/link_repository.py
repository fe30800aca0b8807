"""Link Repository.

This module provides the LinkRepository class for database operations related to Link models.
Every owner-facing query filters on user_id so that a link belonging to
someone else behaves exactly like a missing one.
"""

from typing import Dict, List, Optional, Set

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import and_

from biolink.models.link import Link, LinkCreate, LinkUpdate
from biolink.repositories.base import BaseRepository, DuplicateEntityError, RepositoryError


class LinkRepository(BaseRepository[Link, LinkCreate, LinkUpdate]):
    """
    Repository for Link model database operations.
    """

    def __init__(self):
        super().__init__(Link)

    async def get_destination_url(self, db: AsyncSession, link_id: str) -> Optional[str]:
        """
        Get only the destination URL of a link.

        This is the redirect hot path, so it selects a single column.

        Args:
            db: Database session
            link_id: Link identifier from the request path

        Returns:
            The destination URL, or None if the link does not exist

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = select(self.model_type.url).where(self.model_type.id == link_id)
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving link for redirect: {e}") from e

    async def get_owned(self, db: AsyncSession, link_id: str, user_id: str) -> Optional[Link]:
        """
        Get a link only if it belongs to the given user.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = select(self.model_type).where(
                and_(
                    self.model_type.id == link_id,
                    self.model_type.user_id == user_id,
                )
            ).execution_options(populate_existing=True)
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving link {link_id}: {e}") from e

    async def list_for_user(self, db: AsyncSession, user_id: str) -> List[Link]:
        """Get all of a user's links in page order."""
        try:
            query = (
                select(self.model_type)
                .where(self.model_type.user_id == user_id)
                .order_by(self.model_type.sort_order, self.model_type.created_at)
            )
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error listing links for user {user_id}: {e}") from e

    async def get_next_sort_order(self, db: AsyncSession, user_id: str) -> int:
        """Return the position after the user's last link (0 for the first link)."""
        try:
            query = select(func.max(self.model_type.sort_order)).where(
                self.model_type.user_id == user_id
            )
            result = await db.execute(query)
            current_max = result.scalar_one_or_none()
            return 0 if current_max is None else current_max + 1
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error computing next sort order: {e}") from e

    async def get_existing_ids(self, db: AsyncSession, link_ids: Set[str]) -> Set[str]:
        """
        Return the subset of `link_ids` that currently exist.

        Args:
            db: Database session
            link_ids: Candidate link identifiers

        Returns:
            Set of identifiers present in the links table

        Raises:
            RepositoryError: On database errors
        """
        if not link_ids:
            return set()
        try:
            query = select(self.model_type.id).where(self.model_type.id.in_(link_ids))
            result = await db.execute(query)
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error checking link existence: {e}") from e

    async def increment_clicks(self, db: AsyncSession, link_id: str, amount: int) -> Optional[int]:
        """
        Atomically add `amount` to a link's click counter.

        The addition happens inside the UPDATE statement, so concurrent
        callers compose additively instead of overwriting each other.

        Args:
            db: Database session
            link_id: The link to update
            amount: Number of clicks to add

        Returns:
            The new counter value, or None if the link no longer exists

        Raises:
            RepositoryError: On database errors
        """
        try:
            stmt = (
                update(self.model_type)
                .where(self.model_type.id == link_id)
                .values(clicks=self.model_type.clicks + amount)
                .execution_options(synchronize_session=False)
                .returning(self.model_type.clicks)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error incrementing click count for link {link_id}: {e}") from e

    async def count_owned(self, db: AsyncSession, user_id: str, link_ids: Set[str]) -> int:
        """Count how many of `link_ids` belong to the user."""
        try:
            query = select(func.count()).select_from(self.model_type).where(
                and_(
                    self.model_type.user_id == user_id,
                    self.model_type.id.in_(link_ids),
                )
            )
            result = await db.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error counting owned links: {e}") from e

    async def apply_sort_orders(self, db: AsyncSession, user_id: str, orders: Dict[str, int]) -> None:
        """
        Move a user's links to new positions.

        Positions are unique per user, so a plain sequence of updates would
        collide when two links swap places. Links are first parked on
        negative positions and then moved to their targets.

        Args:
            db: Database session
            user_id: Owner of the links
            orders: Mapping of link id to its new position

        Raises:
            DuplicateEntityError: If a target position is held by a link not being moved
            RepositoryError: On other database errors
        """
        try:
            for index, link_id in enumerate(orders):
                await db.execute(
                    update(self.model_type)
                    .where(and_(self.model_type.id == link_id, self.model_type.user_id == user_id))
                    .values(sort_order=-(index + 1))
                )
            for link_id, sort_order in orders.items():
                await db.execute(
                    update(self.model_type)
                    .where(and_(self.model_type.id == link_id, self.model_type.user_id == user_id))
                    .values(sort_order=sort_order)
                )
        except IntegrityError as e:
            raise DuplicateEntityError(self.model_type, str(e.orig)) from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error reordering links for user {user_id}: {e}") from e
