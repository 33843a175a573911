"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured a shared connection pool
is created; when it's None (local dev, tests) the token blacklist falls
back to its in-memory implementation and no Redis server is needed.

Redis only holds revoked token ids here. That data is ephemeral (each
key expires with the token it revokes) and shared by every API
instance, which is the case Redis fits and Postgres does not.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from portal.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
    )
else:
    redis_pool = None


async def ping_redis() -> bool:
    if redis_pool is None:
        return False
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis ping failed", exc_info=True)
        return False
    return True


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured; token revocation is in-memory")
        yield
        return

    if await ping_redis():
        logger.info("Redis connected")
    else:
        # Keep serving: a dead Redis only degrades logout revocation.
        logger.error("Redis unreachable on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
