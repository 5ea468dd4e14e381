import logging
from datetime import date, time

import redis.asyncio as redis
from redis.exceptions import RedisError


logger = logging.getLogger(__name__)


def _slot_key(slot_date: date, slot_time: time) -> str:
    return f"availability:{slot_date.strftime('%Y%m%d')}:{slot_time.strftime('%H%M%S')}"


class AvailabilityCache:
    """Short-lived cache of available table counts per slot.

    Only informational reads go through here. Redis errors are logged and
    treated as a miss so the database stays the source of truth.
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    async def get(self, slot_date: date, slot_time: time) -> int | None:
        try:
            raw = await self.client.get(_slot_key(slot_date, slot_time))
        except RedisError as exc:
            logger.warning("Availability cache read failed: %s", exc)
            return None
        return int(raw) if raw is not None else None

    async def set(self, slot_date: date, slot_time: time, available: int) -> None:
        try:
            await self.client.set(_slot_key(slot_date, slot_time), available, ex=self.ttl_seconds)
        except RedisError as exc:
            logger.warning("Availability cache write failed: %s", exc)

    async def invalidate(self, slot_date: date, slot_time: time) -> None:
        try:
            await self.client.delete(_slot_key(slot_date, slot_time))
        except RedisError as exc:
            logger.warning("Availability cache invalidation failed: %s", exc)
