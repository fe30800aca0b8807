"""
Data models for the link-in-bio service.

This module imports and exports all SQLModel models used in the application.
"""

from sqlmodel import SQLModel

from biolink.models.user import User
from biolink.models.link import Link, LinkBase, LinkCreate, LinkType, LinkUpdate
from biolink.models.click import ClickEvent, ClickEventBase, ClickEventCreate, ClickEventRead

__all__ = [
    "SQLModel",
    "User",
    "Link",
    "LinkBase",
    "LinkCreate",
    "LinkType",
    "LinkUpdate",
    "ClickEvent",
    "ClickEventBase",
    "ClickEventCreate",
    "ClickEventRead",
]
