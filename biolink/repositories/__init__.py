"""Repository layer.

This module provides repository classes that abstract database operations
and implement the Repository pattern for clean separation of concerns.
"""

from biolink.repositories.base import (
    BaseRepository,
    RepositoryError,
    DuplicateEntityError,
)
from biolink.repositories.link_repository import LinkRepository
from biolink.repositories.click_repository import ClickEventRepository

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "DuplicateEntityError",
    "LinkRepository",
    "ClickEventRepository",
]
