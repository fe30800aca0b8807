"""Tests for the analytics sync service."""

import json
from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from biolink.models.click import ClickEvent
from biolink.repositories.base import RepositoryError
from biolink.repositories.click_repository import ClickEventRepository
from biolink.repositories.link_repository import LinkRepository
from biolink.services.click_queue import BufferedClickEntry, ClickQueue
from biolink.services.exceptions import AnalyticsSyncError
from biolink.services.sync import AnalyticsSyncService
from tests.utils import create_test_link


async def _count_click_events(db):
    result = await db.execute(select(func.count()).select_from(ClickEvent))
    return result.scalar_one()


async def _buffer(queue, link_id, times=1, **fields):
    for _ in range(times):
        await queue.push(BufferedClickEntry(link_id=link_id, **fields))


@pytest.mark.service
class TestAnalyticsSyncService:

    @pytest.fixture
    def sync_service(self):
        return AnalyticsSyncService(LinkRepository(), ClickEventRepository())

    @pytest.fixture
    def queue(self, mock_redis):
        return ClickQueue(mock_redis)

    @pytest.mark.asyncio
    async def test_empty_buffer(self, test_db, sync_service, queue):
        result = await sync_service.drain_and_sync(test_db, queue, 100)

        assert result == {
            "message": "No data to sync",
            "popped": 0,
            "inserted": 0,
            "discarded": 0,
            "increments": {},
        }

    @pytest.mark.asyncio
    async def test_sync_inserts_events_and_increments_counters(self, test_db, sync_service, queue, test_user):
        link_a = await create_test_link(test_db, test_user, sort_order=0, clicks=10)
        link_b = await create_test_link(test_db, test_user, sort_order=1)
        await test_db.commit()
        await _buffer(queue, link_a.id, times=3, device="mobile")
        await _buffer(queue, link_b.id, times=2)

        result = await sync_service.drain_and_sync(test_db, queue, 100)

        assert result["popped"] == 5
        assert result["inserted"] == 5
        assert result["discarded"] == 0
        assert result["increments"] == {link_a.id: 3, link_b.id: 2}
        assert await _count_click_events(test_db) == 5

        await test_db.refresh(link_a)
        await test_db.refresh(link_b)
        assert link_a.clicks == 13
        assert link_b.clicks == 2
        assert await queue.length() == 0

    @pytest.mark.asyncio
    async def test_batch_size_bounds_one_run(self, test_db, sync_service, queue, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        await _buffer(queue, link.id, times=5)

        first = await sync_service.drain_and_sync(test_db, queue, 2)

        assert first["popped"] == 2
        assert await queue.length() == 3

    @pytest.mark.asyncio
    async def test_click_time_is_preserved(self, test_db, sync_service, queue, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        clicked_at = datetime(2026, 10, 18, 23, 59, 0)
        await _buffer(queue, link.id, created_at=clicked_at)

        await sync_service.drain_and_sync(test_db, queue, 10)

        result = await test_db.execute(select(ClickEvent.created_at))
        assert result.scalar_one() == clicked_at

    @pytest.mark.asyncio
    async def test_entries_for_deleted_links_are_discarded(self, test_db, sync_service, queue, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        await _buffer(queue, link.id, times=2)
        await _buffer(queue, "deleted-link", times=3)

        result = await sync_service.drain_and_sync(test_db, queue, 100)

        assert result["popped"] == 5
        assert result["inserted"] == 2
        assert result["discarded"] == 3
        assert result["increments"] == {link.id: 2}

    @pytest.mark.asyncio
    async def test_all_entries_discarded(self, test_db, sync_service, queue):
        await _buffer(queue, "deleted-link", times=2)

        result = await sync_service.drain_and_sync(test_db, queue, 100)

        assert result["message"] == "Data found in queue but all associated links were deleted"
        assert result["popped"] == 2
        assert result["inserted"] == 0
        assert result["discarded"] == 2
        assert await _count_click_events(test_db) == 0

    @pytest.mark.asyncio
    async def test_unreadable_entries_are_discarded(self, test_db, sync_service, queue, mock_redis, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        await _buffer(queue, link.id)
        mock_redis.lists["analytics:queue"].append("{broken")
        mock_redis.lists["analytics:queue"].append(json.dumps({"device": "mobile"}))

        result = await sync_service.drain_and_sync(test_db, queue, 100)

        assert result["popped"] == 3
        assert result["inserted"] == 1
        assert result["discarded"] == 2

    @pytest.mark.asyncio
    async def test_live_counter_raised_to_durable_total(self, test_db, sync_service, queue, mock_redis, test_user):
        link = await create_test_link(test_db, test_user, clicks=40)
        await test_db.commit()
        await _buffer(queue, link.id, times=2)
        # Counter lost, e.g. after a buffer flush
        del mock_redis.data[f"clicks:{link.id}"]

        await sync_service.drain_and_sync(test_db, queue, 100)

        assert await queue.get_live_count(link.id) == 42

    @pytest.mark.asyncio
    async def test_live_counter_ahead_is_left_alone(self, test_db, sync_service, queue, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        await _buffer(queue, link.id, times=3)

        # Only one entry is synced; the counter already reflects all three clicks
        await sync_service.drain_and_sync(test_db, queue, 1)

        assert await queue.get_live_count(link.id) == 3

    @pytest.mark.asyncio
    async def test_buffer_failure(self, test_db, sync_service, failing_redis):
        with pytest.raises(AnalyticsSyncError):
            await sync_service.drain_and_sync(test_db, ClickQueue(failing_redis), 100)

    @pytest.mark.asyncio
    async def test_database_failure_rolls_back(self, test_db, sync_service, queue, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        await _buffer(queue, link.id, times=2)

        with patch.object(
            sync_service.link_repository,
            "increment_clicks",
            side_effect=RepositoryError("Test database error"),
        ):
            with pytest.raises(AnalyticsSyncError):
                await sync_service.drain_and_sync(test_db, queue, 100)

        assert await _count_click_events(test_db) == 0
        await test_db.refresh(link)
        assert link.clicks == 0

    @pytest.mark.asyncio
    async def test_oversized_entry_does_not_sink_the_batch(self, test_db, sync_service, queue, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        await _buffer(queue, link.id, times=5)
        await _buffer(queue, link.id, referrer="https://example.com/" + "a" * 3000)

        result = await sync_service.drain_and_sync(test_db, queue, 100)

        assert result["popped"] == 6
        assert result["inserted"] == 5
        assert result["discarded"] == 1
        assert await _count_click_events(test_db) == 5
        await test_db.refresh(link)
        assert link.clicks == 5

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_reported_as_sync_error(self, test_db, sync_service, queue, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        await _buffer(queue, link.id, times=2)

        with patch.object(
            sync_service.click_repository,
            "create_click_events_batch",
            side_effect=RuntimeError("unexpected"),
        ):
            with pytest.raises(AnalyticsSyncError):
                await sync_service.drain_and_sync(test_db, queue, 100)

        assert await _count_click_events(test_db) == 0

    @pytest.mark.asyncio
    async def test_offset_timestamps_are_stored_as_utc(self, test_db, sync_service, queue, mock_redis, test_user):
        link = await create_test_link(test_db, test_user)
        await test_db.commit()
        mock_redis.lists["analytics:queue"].append(
            json.dumps({"link_id": link.id, "created_at": "2026-10-19T01:30:00+02:00"})
        )

        await sync_service.drain_and_sync(test_db, queue, 10)

        result = await test_db.execute(select(ClickEvent.created_at))
        assert result.scalar_one() == datetime(2026, 10, 18, 23, 30)
