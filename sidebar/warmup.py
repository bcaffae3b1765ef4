"""Startup warmup for the sidebar's storage backends.

Both backends are optional at runtime: an unreachable Redis falls back to the
in-process store, and an unusable favicon database disables the cache. Warmup
decides which mode applies and logs it once, before the first request.
"""

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from sidebar.db.connection import init_favicon_store
from sidebar.store import get_redis

logger = logging.getLogger(__name__)


async def warmup_favicon_store(engine: AsyncEngine) -> bool:
    """Create or open the favicon store. Returns ``False`` when it is unusable."""

    start = time.time()
    try:
        await init_favicon_store(engine)
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Favicon store unavailable, icons will not be cached: %s", exc)
        return False

    elapsed = (time.time() - start) * 1000
    logger.info("Favicon store ready (%.0fms)", elapsed)
    return True


async def warmup_redis() -> bool:
    """Connect to Redis. Returns ``False`` when the in-process store is used."""

    start = time.time()
    redis = await get_redis()
    if redis is None:
        logger.info("Redis unavailable; site list kept in process memory only")
        return False

    elapsed = (time.time() - start) * 1000
    logger.info("Redis connection warmed up (%.0fms)", elapsed)
    return True


async def warmup_all(engine: AsyncEngine) -> tuple[bool, bool]:
    """Warm both backends and return ``(favicon_store_ok, redis_ok)``."""

    logger.info("=" * 60)
    logger.info("Warming up sidebar storage...")
    logger.info("=" * 60)

    start = time.time()
    favicon_ok = await warmup_favicon_store(engine)
    redis_ok = await warmup_redis()

    total_elapsed = (time.time() - start) * 1000
    logger.info("Warmup complete (%.0fms)", total_elapsed)
    return favicon_ok, redis_ok


__all__ = ["warmup_all", "warmup_favicon_store", "warmup_redis"]
