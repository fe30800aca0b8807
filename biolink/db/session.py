"""Session management for database operations.

This module provides utilities for handling SQLAlchemy async sessions
with proper lifecycle management, error handling, and transaction support.
It includes dependency injection patterns for FastAPI.
"""

import inspect
import logging
from functools import wraps
from typing import AsyncGenerator, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.db.base import get_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Yields:
        AsyncSession: A SQLAlchemy async session object.

    Example:
        ```python
        @router.get("/link")
        async def list_links(db: AsyncSession = Depends(get_db)):
            return await link_service.list_links(db, user_id)
        ```
    """
    async with get_session() as session:
        try:
            yield session
        except SQLAlchemyError:
            logger.exception("Database error occurred")
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise


def db_transaction(db_param_name: Optional[str] = None) -> Callable:
    """Decorator to wrap a coroutine in a database transaction.

    Finds the AsyncSession argument, commits on success and rolls back on
    error. The session is located by parameter name when given, otherwise
    by the first parameter annotated as AsyncSession.

    Args:
        db_param_name: Optional name of the database session parameter.

    Example:
        ```python
        @db_transaction(db_param_name="db")
        async def delete_link(self, db: AsyncSession, user_id: str, link_id: str) -> bool:
            ...
        ```

    Raises:
        ValueError: If no database session is passed to the wrapped function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        parameters = inspect.signature(func).parameters
        db_param_pos = None
        db_param_key = None

        for i, (param_name, param) in enumerate(parameters.items()):
            if db_param_name is not None:
                if param_name == db_param_name:
                    db_param_pos, db_param_key = i, param_name
                    break
            elif param.annotation is AsyncSession:
                db_param_pos, db_param_key = i, param_name
                break

        if db_param_key is None:
            logger.warning(
                f"Unable to find database session parameter in function '{func.__name__}'"
            )

        @wraps(func)
        async def wrapper(*args, **kwargs):
            db = None
            if db_param_key is not None and db_param_key in kwargs:
                db = kwargs[db_param_key]
            elif db_param_pos is not None and len(args) > db_param_pos:
                db = args[db_param_pos]
            else:
                db = next(
                    (value for value in (*args, *kwargs.values()) if isinstance(value, AsyncSession)),
                    None,
                )

            if db is None:
                raise ValueError(
                    f"Database session not found in function arguments for '{func.__name__}'"
                )

            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except Exception as e:
                await db.rollback()
                logger.error(f"Transaction failed in '{func.__name__}': {e}")
                raise

        return wrapper
    return decorator

