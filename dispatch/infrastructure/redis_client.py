"""
Shared Redis client for the sweep lease and the optional Redis sequence
store.  The pool is built on first use and disconnected at shutdown.
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from dispatch.config import settings

_pool: Optional[aioredis.ConnectionPool] = None


async def get_redis() -> aioredis.Redis:
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            settings.redis_url, decode_responses=True
        )
    return aioredis.Redis(connection_pool=_pool)


async def redis_available() -> bool:
    """True if Redis answers a PING."""
    try:
        return bool(await (await get_redis()).ping())
    except (RedisError, OSError):
        return False


async def close_redis() -> None:
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
