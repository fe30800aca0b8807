"""Link management service.

This module contains the LinkService class which implements the owner-facing
operations on a user's links: listing, creation, editing, deletion,
reordering, and unlocking password-protected links.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.config import settings
from biolink.core.security import hash_password, verify_password
from biolink.db.session import db_transaction
from biolink.models.link import Link, LinkCreate
from biolink.repositories.base import DuplicateEntityError, RepositoryError
from biolink.repositories.link_repository import LinkRepository
from biolink.services.exceptions import (
    InvalidLinkPasswordError,
    LinkNotFoundError,
    LinkReorderError,
    LinkUpdateError,
)

logger = logging.getLogger(__name__)


class LinkService:
    """
    Service for link management business logic.

    Every operation except unlock is scoped to the requesting user; links
    owned by somebody else are reported as not found.
    """

    def __init__(self, link_repository: LinkRepository):
        """
        Initialize the link service.

        Args:
            link_repository: Repository for link data access
        """
        self.link_repository = link_repository

    async def _get_owned_or_raise(self, db: AsyncSession, user_id: str, link_id: str) -> Link:
        try:
            link = await self.link_repository.get_owned(db, link_id, user_id)
        except RepositoryError as e:
            logger.error(f"Error retrieving link {link_id}: {e}")
            raise LinkUpdateError(f"Failed to retrieve link '{link_id}': {e}") from e
        if link is None:
            raise LinkNotFoundError(f"Link '{link_id}' not found")
        return link

    async def list_links(self, db: AsyncSession, user_id: str) -> List[Link]:
        """Return the user's links in page order."""
        try:
            return await self.link_repository.list_for_user(db, user_id)
        except RepositoryError as e:
            logger.error(f"Error listing links for user {user_id}: {e}")
            raise LinkUpdateError(f"Failed to list links: {e}") from e

    @db_transaction(db_param_name="db")
    async def create_link(
        self,
        db: AsyncSession,
        user_id: str,
        data: BaseModel,
        password: Optional[str] = None,
    ) -> Link:
        """
        Append a new link to the end of the user's page.

        Args:
            db: Database session
            user_id: Owner of the new link
            data: Editable link fields
            password: Optional password protecting the link

        Returns:
            Link: The created link

        Raises:
            LinkUpdateError: If the link could not be stored
        """
        try:
            sort_order = await self.link_repository.get_next_sort_order(db, user_id)
            link_data = LinkCreate(
                **data.model_dump(exclude={"password"}),
                user_id=user_id,
                sort_order=sort_order,
                password_hash=hash_password(password) if password else None,
            )
            link = await self.link_repository.create(db, link_data)
            logger.info(f"Created link {link.id} for user {user_id} at position {sort_order}")
            return link
        except DuplicateEntityError as e:
            logger.warning(f"Position conflict creating link for user {user_id}: {e}")
            raise LinkUpdateError("Another link was created at the same time, please retry") from e
        except RepositoryError as e:
            logger.error(f"Error creating link: {e}")
            raise LinkUpdateError(f"Failed to create link: {e}") from e

    async def get_link(self, db: AsyncSession, user_id: str, link_id: str) -> Link:
        """
        Raises:
            LinkNotFoundError: If the link does not exist or is not owned by the user
            LinkUpdateError: If the lookup failed
        """
        return await self._get_owned_or_raise(db, user_id, link_id)

    @db_transaction(db_param_name="db")
    async def update_link(
        self,
        db: AsyncSession,
        user_id: str,
        link_id: str,
        changes: Dict[str, Any],
    ) -> Link:
        """
        Apply a partial update to one of the user's links.

        A "password" key sets a new password; an empty or null value removes
        the protection.

        Raises:
            LinkNotFoundError: If the link does not exist or is not owned by the user
            LinkUpdateError: If the update failed
        """
        link = await self._get_owned_or_raise(db, user_id, link_id)

        changes = dict(changes)
        if "password" in changes:
            password = changes.pop("password")
            changes["password_hash"] = hash_password(password) if password else None

        try:
            return await self.link_repository.update(db, link, changes)
        except RepositoryError as e:
            logger.error(f"Error updating link {link_id}: {e}")
            raise LinkUpdateError(f"Failed to update link: {e}") from e

    @db_transaction(db_param_name="db")
    async def delete_link(self, db: AsyncSession, user_id: str, link_id: str) -> bool:
        """
        Delete one of the user's links together with its click history.

        Raises:
            LinkNotFoundError: If the link does not exist or is not owned by the user
            LinkUpdateError: If the delete failed
        """
        link = await self._get_owned_or_raise(db, user_id, link_id)
        try:
            await self.link_repository.delete(db, link)
        except RepositoryError as e:
            logger.error(f"Error deleting link {link_id}: {e}")
            raise LinkUpdateError(f"Failed to delete link: {e}") from e
        logger.info(f"Deleted link {link_id} for user {user_id}")
        return True

    @db_transaction(db_param_name="db")
    async def reorder_links(
        self,
        db: AsyncSession,
        user_id: str,
        orders: List[Tuple[str, int]],
    ) -> List[Link]:
        """
        Move links to new positions in one transaction.

        Args:
            db: Database session
            user_id: Owner of the links
            orders: (link id, target position) pairs

        Returns:
            The user's links in their new order

        Raises:
            LinkReorderError: If the ordering is empty, repeats a position,
                names a link the user does not own, or collides with a link
                left in place
        """
        if not orders:
            raise LinkReorderError("No links to reorder")
        positions = dict(orders)
        if len(positions) != len(orders):
            raise LinkReorderError("Each link may appear only once")
        if len(set(positions.values())) != len(positions):
            raise LinkReorderError("Each link must be given a distinct position")

        try:
            owned = await self.link_repository.count_owned(db, user_id, set(positions))
            if owned != len(positions):
                raise LinkReorderError("One or more links do not exist")

            await self.link_repository.apply_sort_orders(db, user_id, positions)
            return await self.link_repository.list_for_user(db, user_id)
        except DuplicateEntityError as e:
            logger.warning(f"Reorder for user {user_id} collides with an existing position: {e}")
            raise LinkReorderError("A target position is already taken by another link") from e
        except RepositoryError as e:
            logger.error(f"Error reordering links for user {user_id}: {e}")
            raise LinkReorderError(f"Failed to reorder links: {e}") from e

    async def unlock_link(self, db: AsyncSession, link_id: str, password: str) -> str:
        """
        Check the password of a protected link.

        Returns:
            Path of the click endpoint for the link

        Raises:
            LinkNotFoundError: If the link does not exist
            InvalidLinkPasswordError: If the password is wrong
            LinkUpdateError: If the lookup failed
        """
        try:
            link = await self.link_repository.get_by_id(db, link_id)
        except RepositoryError as e:
            logger.error(f"Error retrieving link {link_id} for unlock: {e}")
            raise LinkUpdateError(f"Failed to retrieve link '{link_id}': {e}") from e

        if link is None:
            raise LinkNotFoundError(f"Link '{link_id}' not found")

        if link.password_hash and not verify_password(password, link.password_hash):
            raise InvalidLinkPasswordError("Incorrect password")

        return f"{settings.API_PREFIX}/link/{link_id}/click"
