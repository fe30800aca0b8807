"""Link data models.

This module defines the Link model: one outbound destination on a user's
page, together with its cumulative click counter.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from .click import ClickEvent
    from .user import User


class LinkType(str, Enum):
    """How a link is rendered on the public page."""
    LINK = "link"
    SOCIAL = "social"
    EMBED = "embed"
    SUPPORT = "support"


class LinkBase(SQLModel):
    """Owner-editable link fields."""

    url: str = Field(description="Destination URL the click endpoint redirects to", max_length=2048)
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1024)
    image_url: Optional[str] = Field(default=None, max_length=2048)
    category: Optional[str] = Field(default=None, max_length=64, description="Free-text grouping")
    type: LinkType = Field(default=LinkType.LINK)
    is_sensitive: bool = Field(default=False, description="Show a content warning before redirecting")


class Link(LinkBase, table=True):
    """
    Link model.

    `clicks` is only ever changed with an atomic in-database increment by the
    analytics sync worker. `sort_order` is unique per owner, not globally.
    """

    __tablename__ = "links"

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        primary_key=True,
        max_length=64,
    )
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    sort_order: int = Field(default=0, description="Position among the owner's links")
    clicks: int = Field(default=0, description="Cumulative click counter")
    password_hash: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column_kwargs={"onupdate": datetime.utcnow},
    )

    user: Optional["User"] = Relationship(
        back_populates="links",
        sa_relationship_kwargs={"lazy": "noload"}
    )
    click_events: List["ClickEvent"] = Relationship(
        back_populates="link",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "passive_deletes": True,
            "lazy": "noload",
        }
    )

    __table_args__ = (
        UniqueConstraint("user_id", "sort_order", name="uq_links_user_sort_order"),
    )

    @property
    def is_protected(self) -> bool:
        return self.password_hash is not None


class LinkCreate(LinkBase):
    """Data for inserting a link row."""
    user_id: str
    sort_order: int
    password_hash: Optional[str] = None


class LinkUpdate(SQLModel):
    """Partial update of a link; unset fields are left alone."""
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    type: Optional[LinkType] = None
    is_sensitive: Optional[bool] = None
    sort_order: Optional[int] = None
    password_hash: Optional[str] = None
