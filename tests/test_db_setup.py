"""Basic tests to verify test DB setup."""

import pytest
from sqlalchemy import func, select, text

from biolink.models.click import ClickEvent
from biolink.models.link import Link
from tests.utils import create_test_click, create_test_link, create_test_user


@pytest.mark.asyncio
async def test_tables_exist(test_engine):
    """Verify every table is created in the test database."""
    async with test_engine.connect() as conn:
        result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
        tables = [row[0] for row in result.fetchall()]

    for table in ("users", "links", "click_events"):
        assert table in tables


@pytest.mark.asyncio
async def test_click_events_reference_links(test_db):
    result = await test_db.execute(text("PRAGMA foreign_key_list('click_events')"))
    fk_info = result.fetchall()

    assert any(fk[2] == "links" for fk in fk_info)


@pytest.mark.asyncio
async def test_deleting_link_removes_its_click_events(test_db):
    user = await create_test_user(test_db)
    link = await create_test_link(test_db, user)
    await create_test_click(test_db, link)
    await create_test_click(test_db, link)
    await test_db.commit()

    await test_db.execute(text("DELETE FROM links WHERE id = :id"), {"id": link.id})
    await test_db.commit()

    result = await test_db.execute(select(func.count()).select_from(ClickEvent))
    assert result.scalar_one() == 0


@pytest.mark.asyncio
async def test_deleting_user_removes_their_links(test_db):
    user = await create_test_user(test_db)
    await create_test_link(test_db, user, sort_order=0)
    await create_test_link(test_db, user, sort_order=1)
    await test_db.commit()

    await test_db.execute(text("DELETE FROM users WHERE id = :id"), {"id": user.id})
    await test_db.commit()

    result = await test_db.execute(select(func.count()).select_from(Link))
    assert result.scalar_one() == 0


@pytest.mark.asyncio
async def test_default_timestamps_are_naive_utc(test_db):
    user = await create_test_user(test_db)
    link = await create_test_link(test_db, user)
    click = await create_test_click(test_db, link)
    await test_db.commit()

    for row in (user, link, click):
        await test_db.refresh(row)
        assert row.created_at.tzinfo is None
