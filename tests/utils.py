"""Test utilities for biolink tests."""

import random
import string
from datetime import datetime
from typing import Optional

from biolink.core.security import hash_password
from biolink.models.click import ClickEvent
from biolink.models.link import Link
from biolink.models.user import User


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    domain = f"{random_string(8).lower()}.com"
    path = random_string(12)
    return f"https://{domain}/{path}"


async def create_test_user(db, email: Optional[str] = None, username: Optional[str] = None) -> User:
    """Create and persist a test User in the database."""
    user = User(
        email=email or f"{random_string(8).lower()}@example.com",
        username=username,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def create_test_link(
    db,
    user: User,
    url: Optional[str] = None,
    sort_order: int = 0,
    clicks: int = 0,
    password: Optional[str] = None,
    title: Optional[str] = None,
) -> Link:
    """Create and persist a test Link in the database."""
    link = Link(
        user_id=user.id,
        url=url or random_url(),
        title=title,
        sort_order=sort_order,
        clicks=clicks,
        password_hash=hash_password(password) if password else None,
    )
    db.add(link)
    await db.flush()
    await db.refresh(link)
    return link


async def create_test_click(
    db,
    link: Link,
    created_at: Optional[datetime] = None,
    **fields
) -> ClickEvent:
    """Create and persist a ClickEvent; unspecified fields keep their sentinels."""
    click = ClickEvent(link_id=link.id, created_at=created_at or datetime.utcnow(), **fields)
    db.add(click)
    await db.flush()
    return click
