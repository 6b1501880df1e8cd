"""Shared async Redis connection for idempotency keys and the readiness probe."""
from redis.asyncio import Redis as AsyncRedis

from ..settings import settings

_redis_async: AsyncRedis | None = None


async def get_redis() -> AsyncRedis:
    global _redis_async
    if _redis_async is None:
        _redis_async = AsyncRedis.from_url(settings.redis_url, decode_responses=True)
    return _redis_async


async def close_redis() -> None:
    global _redis_async
    if _redis_async is not None:
        await _redis_async.aclose()
        _redis_async = None
