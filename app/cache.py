import json
from datetime import date
from uuid import UUID

from loguru import logger
from redis.asyncio import Redis

from app.settings import REDIS_URL, SLOTS_TTL

_redis: Redis | None = None


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _slots_key(offer_id: UUID, day: date) -> str:
    return f"slots:{offer_id}:{day.isoformat()}"


async def get_slots_cache(offer_id: UUID, day: date) -> list | None:
    try:
        data = await get_redis().get(_slots_key(offer_id, day))
        return json.loads(data) if data else None
    except Exception:
        logger.warning("Redis get failed — skipping slots cache", exc_info=True)
        return None


async def set_slots_cache(offer_id: UUID, day: date, slots: list) -> None:
    try:
        await get_redis().setex(_slots_key(offer_id, day), SLOTS_TTL, json.dumps(slots))
    except Exception:
        logger.warning("Redis set failed — skipping slots cache", exc_info=True)


async def invalidate_slots_cache(offer_id: UUID, day: date | None = None) -> None:
    """Drop one cached day, or every cached day of the offer when day is None."""
    try:
        redis = get_redis()
        if day is not None:
            await redis.delete(_slots_key(offer_id, day))
            return
        keys = [key async for key in redis.scan_iter(match=f"slots:{offer_id}:*")]
        if keys:
            await redis.delete(*keys)
    except Exception:
        logger.warning("Redis invalidate failed for slots cache", exc_info=True)
