"""Base repository implementation.

This module provides a generic BaseRepository class that follows the Repository pattern
for database operations, serving as a foundation for more specific repositories.
"""

import logging
from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

T = TypeVar("T", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class DuplicateEntityError(RepositoryError):
    """Exception raised when a unique constraint is violated."""

    def __init__(self, model_type: Type[SQLModel], detail: str):
        self.model_type = model_type
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} violates a unique constraint: {detail}")


def _as_dict(data: Union[BaseModel, Dict[str, Any]], exclude_unset: bool = False) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=exclude_unset)
    return dict(data)


class BaseRepository(Generic[T, CreateSchemaType, UpdateSchemaType]):
    """
    Base repository implementing common CRUD operations for SQLModel entities.

    Repositories never commit; the caller owns the transaction. Every
    SQLAlchemy failure is re-raised as RepositoryError.

    Type parameters:
        T: The SQLModel type this repository manages
        CreateSchemaType: The model type for creation operations
        UpdateSchemaType: The model type for update operations
    """

    def __init__(self, model_type: Type[T]):
        self.model_type = model_type

    async def get_by_id(self, db: AsyncSession, id: Any) -> Optional[T]:
        """
        Get an entity by its ID.

        Args:
            db: Database session
            id: Entity ID

        Returns:
            The entity if found, None otherwise
        """
        try:
            return await db.get(self.model_type, id)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving {self.model_type.__name__} with id {id}: {e}")
            raise RepositoryError(f"Database error retrieving entity: {e}") from e

    async def create(self, db: AsyncSession, data: Union[CreateSchemaType, Dict[str, Any]]) -> T:
        """
        Create a new entity.

        Args:
            db: Database session
            data: Entity data (either as a model or dictionary)

        Returns:
            The created entity

        Raises:
            DuplicateEntityError: On unique constraint violations
            RepositoryError: On other database errors
        """
        try:
            entity = self.model_type(**_as_dict(data))
            db.add(entity)
            await db.flush()
            await db.refresh(entity)
            return entity
        except IntegrityError as e:
            logger.warning(f"Integrity error creating {self.model_type.__name__}: {e.orig}")
            raise DuplicateEntityError(self.model_type, str(e.orig)) from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model_type.__name__}: {e}")
            raise RepositoryError(f"Database error creating entity: {e}") from e

    async def update(
        self,
        db: AsyncSession,
        entity: T,
        data: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> T:
        """
        Apply the set fields of `data` to an already loaded entity.

        Args:
            db: Database session
            entity: Entity to modify
            data: Updated entity data; unset model fields are skipped

        Returns:
            The updated entity

        Raises:
            DuplicateEntityError: On unique constraint violations
            RepositoryError: On other database errors
        """
        try:
            for key, value in _as_dict(data, exclude_unset=True).items():
                setattr(entity, key, value)

            await db.flush()
            await db.refresh(entity)
            return entity
        except IntegrityError as e:
            logger.warning(f"Integrity error updating {self.model_type.__name__}: {e.orig}")
            raise DuplicateEntityError(self.model_type, str(e.orig)) from e
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model_type.__name__}: {e}")
            raise RepositoryError(f"Database error updating entity: {e}") from e

    async def delete(self, db: AsyncSession, entity: T) -> None:
        """
        Delete an already loaded entity.

        Raises:
            RepositoryError: On database errors
        """
        try:
            await db.delete(entity)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self.model_type.__name__}: {e}")
            raise RepositoryError(f"Database error deleting entity: {e}") from e

