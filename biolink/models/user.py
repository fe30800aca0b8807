"""User account model.

Accounts are issued by the identity provider; this table only anchors
link ownership.
"""

import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from .link import Link


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        primary_key=True,
        max_length=64,
    )
    email: str = Field(unique=True, max_length=320)
    username: Optional[str] = Field(default=None, unique=True, max_length=32)
    name: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    links: List["Link"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "passive_deletes": True,
            "lazy": "noload",
        }
    )
