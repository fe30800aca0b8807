"""Click buffer backed by Redis.

The buffer absorbs click writes from the redirect path. Producers push a
JSON snapshot onto a list and bump a per-link live counter in one pipeline;
the sync worker pops from the head of the same list. A pop is destructive:
once an entry has been taken it exists only in the worker's memory.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

import redis.asyncio as redis
from pydantic import BaseModel, Field, ValidationError, field_validator

from biolink.core.config import settings
from biolink.models.click import ClickEventCreate

logger = logging.getLogger(__name__)


class BufferedClickEntry(BaseModel):
    """Snapshot of one click, as stored in the buffer."""

    link_id: str
    device: str = "desktop"
    browser: str = "Unknown"
    os: str = "Unknown"
    referrer: str = "Direct"
    country: str = "Unknown"
    city: str = "Unknown"
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("created_at")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        # Stored in a timestamp column without time zone
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @classmethod
    def parse(cls, raw: Union[str, bytes, dict]) -> "BufferedClickEntry":
        """
        Build an entry from whatever the buffer client handed back.

        Depending on the client, a popped value is either an already decoded
        mapping or the serialized JSON text; both are accepted here so the
        worker has a single parse step.

        Raises:
            ValueError: If the payload is neither form or is missing fields
        """
        try:
            if isinstance(raw, dict):
                return cls.model_validate(raw)
            if isinstance(raw, (str, bytes, bytearray)):
                return cls.model_validate_json(raw)
        except ValidationError as e:
            raise ValueError(f"Malformed buffered click entry: {e}") from e
        raise ValueError(f"Unsupported buffered click entry type: {type(raw).__name__}")

    def to_click_event(self) -> ClickEventCreate:
        """
        Raises:
            ValidationError: If a field exceeds the column bounds
        """
        return ClickEventCreate(**self.model_dump())


class ClickQueue:
    """
    Producer and consumer operations on the click buffer.

    Args:
        client: Redis client (decode_responses=True)
        queue_key: List holding serialized entries
        counter_prefix: Prefix of the per-link live counter keys
    """

    def __init__(
        self,
        client: redis.Redis,
        queue_key: Optional[str] = None,
        counter_prefix: Optional[str] = None,
    ):
        self.client = client
        self.queue_key = queue_key or settings.ANALYTICS_QUEUE_KEY
        self.counter_prefix = counter_prefix or settings.LIVE_COUNTER_KEY_PREFIX

    def counter_key(self, link_id: str) -> str:
        return f"{self.counter_prefix}{link_id}"

    async def push(self, entry: BufferedClickEntry) -> int:
        """
        Append an entry to the tail of the queue and bump the live counter.

        Both commands go out in one pipeline round trip.

        Returns:
            The live counter value after the increment

        Raises:
            RedisError: If the buffer is unavailable
        """
        pipe = self.client.pipeline()
        pipe.incr(self.counter_key(entry.link_id))
        pipe.rpush(self.queue_key, entry.model_dump_json())
        live_count, _ = await pipe.execute()
        return int(live_count)

    async def pop_batch(self, count: int) -> List[Any]:
        """
        Remove and return up to `count` entries from the head of the queue.

        Returns:
            Raw entries in FIFO order; empty when the queue is empty

        Raises:
            RedisError: If the buffer is unavailable
        """
        entries = await self.client.lpop(self.queue_key, count)
        return list(entries) if entries else []

    async def length(self) -> int:
        return int(await self.client.llen(self.queue_key))

    async def get_live_count(self, link_id: str) -> Optional[int]:
        value = await self.client.get(self.counter_key(link_id))
        return int(value) if value is not None else None

    async def raise_live_count(self, link_id: str, durable_count: int) -> bool:
        """
        Lift the live counter to the durable count if it fell behind,
        for example after the buffer was flushed. Never lowers it.

        Returns:
            True if the counter was changed
        """
        current = await self.get_live_count(link_id)
        if current is not None and current >= durable_count:
            return False
        await self.client.set(self.counter_key(link_id), durable_count)
        logger.info(f"Live counter for link {link_id} raised from {current} to {durable_count}")
        return True

