"""Tests for the scheduled sync job."""

from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest

from biolink.scheduler.scheduler import SYNC_JOB_ID, SchedulerService, sync_analytics_job
from biolink.services.click_queue import BufferedClickEntry, ClickQueue
from tests.utils import create_test_link


class StubRedisManager:
    def __init__(self, client):
        self.client = client

    async def get_client(self):
        return self.client


@pytest.fixture
def job_session(test_db):
    @asynccontextmanager
    async def _session():
        yield test_db

    with patch("biolink.scheduler.scheduler.get_session", _session):
        yield


@pytest.mark.service
@pytest.mark.asyncio
async def test_sync_job_drains_buffer(test_db, mock_redis, job_session, test_user):
    link = await create_test_link(test_db, test_user)
    await test_db.commit()
    await ClickQueue(mock_redis).push(BufferedClickEntry(link_id=link.id))

    result = await sync_analytics_job(StubRedisManager(mock_redis))

    assert result["inserted"] == 1
    await test_db.refresh(link)
    assert link.clicks == 1


@pytest.mark.service
@pytest.mark.asyncio
async def test_sync_job_reports_errors(failing_redis, job_session):
    result = await sync_analytics_job(StubRedisManager(failing_redis))

    assert result["status"] == "error"
    assert "timestamp" in result


@pytest.mark.service
@pytest.mark.asyncio
async def test_scheduler_registers_sync_job(mock_redis):
    scheduler = SchedulerService(StubRedisManager(mock_redis))

    scheduler.start()
    try:
        status = scheduler.get_status()
        assert status["running"] is True
        assert [job["job_id"] for job in status["scheduler_jobs_status"]] == [SYNC_JOB_ID]
    finally:
        scheduler.shutdown()

    assert scheduler.get_status()["running"] is False
