"""Tests for the click redirect endpoint."""

from unittest.mock import patch

import pytest

from biolink.repositories.base import RepositoryError
from biolink.repositories.link_repository import LinkRepository
from biolink.services.click_queue import BufferedClickEntry, ClickQueue
from tests.utils import create_test_link


@pytest.mark.api
class TestClickEndpoint:

    @pytest.mark.asyncio
    async def test_redirects_and_buffers_click(self, client, test_db, mock_redis, test_user):
        link = await create_test_link(test_db, test_user, url="https://example.com/landing")

        response = await client.get(
            f"/api/link/{link.id}/click",
            headers={
                "User-Agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) Mobile Safari/604.1",
                "Referer": "https://instagram.com/",
                "x-vercel-ip-country": "US",
                "x-vercel-ip-city": "New%20York",
            },
        )

        assert response.status_code == 307
        assert response.headers["location"] == "https://example.com/landing"

        queue = ClickQueue(mock_redis)
        assert await queue.get_live_count(link.id) == 1
        [raw] = await queue.pop_batch(10)
        entry = BufferedClickEntry.parse(raw)
        assert entry.link_id == link.id
        assert entry.device == "mobile"
        assert entry.referrer == "https://instagram.com/"
        assert entry.country == "US"
        assert entry.city == "New York"

    @pytest.mark.asyncio
    async def test_unknown_link_is_404_and_not_tracked(self, client, mock_redis):
        response = await client.get("/api/link/does-not-exist/click")

        assert response.status_code == 404
        assert mock_redis.lists == {}

    @pytest.mark.asyncio
    async def test_protected_link_still_redirects(self, client, test_db, test_user):
        link = await create_test_link(test_db, test_user, url="https://example.com/vip", password="pw")

        response = await client.get(f"/api/link/{link.id}/click")

        assert response.status_code == 307
        assert response.headers["location"] == "https://example.com/vip"

    @pytest.mark.asyncio
    async def test_buffer_outage_does_not_block_redirect(self, client, test_db, failing_redis, test_user):
        from biolink.api.dependencies import get_redis
        from biolink.main import app

        link = await create_test_link(test_db, test_user, url="https://example.com/up")
        app.dependency_overrides[get_redis] = lambda: failing_redis

        response = await client.get(f"/api/link/{link.id}/click")

        assert response.status_code == 307
        assert response.headers["location"] == "https://example.com/up"

    @pytest.mark.asyncio
    async def test_database_failure_falls_back_untracked(self, client, mock_redis):
        async def primary_lookup_fails(self, db, link_id):
            raise RepositoryError("Test database error")

        async def fallback(self, link_id):
            return "https://example.com/fallback"

        with patch.object(LinkRepository, "get_destination_url", primary_lookup_fails), \
                patch("biolink.services.tracking.ClickRecorder.resolve_destination_untracked", fallback):
            response = await client.get("/api/link/any-link/click")

        assert response.status_code == 307
        assert response.headers["location"] == "https://example.com/fallback"
        assert mock_redis.lists == {}
