"""
Click event data models.

A ClickEvent is the durable record of one click. Rows are only ever
written in bulk by the sync worker from buffered entries, so `created_at`
is the time the click was recorded, not the time the row was inserted.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Index
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from .link import Link


class ClickEventBase(SQLModel):
    """Base model for click event data."""

    device: str = Field(default="desktop", max_length=32, description="Device class: mobile, tablet or desktop")
    browser: str = Field(default="Unknown", max_length=64)
    os: str = Field(default="Unknown", max_length=64)
    referrer: str = Field(default="Direct", max_length=2048, description="Referer header or 'Direct'")
    country: str = Field(default="Unknown", max_length=64)
    city: str = Field(default="Unknown", max_length=128)
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the click was recorded by the redirect endpoint"
    )


class ClickEvent(ClickEventBase, table=True):
    __tablename__ = "click_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: str = Field(
        foreign_key="links.id",
        ondelete="CASCADE",
        description="Foreign key reference to the clicked link"
    )

    link: Optional["Link"] = Relationship(
        back_populates="click_events",
        sa_relationship_kwargs={"lazy": "noload"}
    )

    __table_args__ = (
        # Per-link time window and group-by queries
        Index("ix_click_events_link_id_created_at", "link_id", "created_at"),
    )


class ClickEventCreate(ClickEventBase):
    """Schema for a click event row built from a buffered entry."""
    link_id: str


class ClickEventRead(ClickEventBase):
    id: int
    link_id: str
