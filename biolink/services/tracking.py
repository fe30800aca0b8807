"""Click recording for the redirect endpoint.

The redirect is answered from a single-column lookup. Everything else
(user-agent parsing, geolocation, buffering) runs after the response has
been sent and can never change what the visitor gets.
"""

import logging
from datetime import datetime
from typing import Callable, Mapping, Optional
from urllib.parse import unquote

from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.config import settings
from biolink.db.base import get_session
from biolink.repositories.link_repository import LinkRepository
from biolink.services.click_queue import BufferedClickEntry, ClickQueue
from biolink.services.exceptions import LinkNotFoundError
from biolink.services.user_agent import UNKNOWN, parse_user_agent

logger = logging.getLogger(__name__)

DIRECT_REFERRER = "Direct"
FALLBACK_COUNTRY_HEADER = "cf-ipcountry"

# Column widths of click_events; header values are cut to fit
MAX_REFERRER_LENGTH = 2048
MAX_COUNTRY_LENGTH = 64
MAX_CITY_LENGTH = 128


def _clip(value: str, limit: int) -> str:
    return value[:limit]


class ClickRecorder:
    """
    Resolves click destinations and records clicks into the buffer.

    Args:
        link_repository: Repository for link lookups
        session_factory: Async context manager factory used for the
            untracked fallback lookup, which must not reuse the request session
    """

    def __init__(
        self,
        link_repository: LinkRepository,
        session_factory: Callable = get_session,
    ):
        self.link_repository = link_repository
        self.session_factory = session_factory

    async def resolve_destination(self, db: AsyncSession, link_id: str) -> str:
        """
        Look up where a click on `link_id` should go.

        Raises:
            LinkNotFoundError: If the link does not exist
            RepositoryError: If the lookup itself failed
        """
        url = await self.link_repository.get_destination_url(db, link_id)
        if url is None:
            raise LinkNotFoundError(f"Link '{link_id}' not found")
        return url

    async def resolve_destination_untracked(self, link_id: str) -> str:
        """
        Retry the lookup on a fresh session after the request session failed.

        Clicks resolved this way are redirected but not recorded.

        Raises:
            LinkNotFoundError: If the link is really gone
            RepositoryError: If the database is still unavailable
        """
        async with self.session_factory() as session:
            return await self.resolve_destination(session, link_id)

    def build_entry(
        self,
        link_id: str,
        headers: Mapping[str, str],
        now: Optional[datetime] = None,
    ) -> BufferedClickEntry:
        """
        Snapshot the request context into a buffer entry.

        Args:
            link_id: Clicked link
            headers: Request headers; lookups are case-insensitive when a
                Starlette Headers object is passed, otherwise keys must be lowercase
            now: Click time (defaults to the current UTC time)
        """
        client = parse_user_agent(headers.get("user-agent"))

        country = headers.get(settings.GEO_COUNTRY_HEADER) or headers.get(FALLBACK_COUNTRY_HEADER)
        city = headers.get(settings.GEO_CITY_HEADER)

        return BufferedClickEntry(
            link_id=link_id,
            device=client.device,
            browser=client.browser,
            os=client.os,
            referrer=_clip(headers.get("referer") or DIRECT_REFERRER, MAX_REFERRER_LENGTH),
            country=_clip(country or UNKNOWN, MAX_COUNTRY_LENGTH),
            city=_clip(unquote(city), MAX_CITY_LENGTH) if city else UNKNOWN,
            created_at=now or datetime.utcnow(),
        )

    async def record_click(
        self,
        queue: ClickQueue,
        link_id: str,
        headers: Mapping[str, str],
    ) -> None:
        """
        Buffer one click. Runs after the redirect has been sent.

        Any failure is logged and dropped; the visitor already has their
        redirect and tracking is best-effort.
        """
        try:
            entry = self.build_entry(link_id, headers)
            live_count = await queue.push(entry)
            logger.debug(f"Buffered click for link {link_id} (live count {live_count})")
        except Exception as e:
            logger.error(f"Error tracking click for link {link_id}: {e}")

