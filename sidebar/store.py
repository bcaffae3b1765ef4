"""Persistent key/value store backing the site registry.

Values are JSON documents stored in Redis. When Redis is not reachable the
store transparently degrades to an in-process dictionary so the sidebar keeps
working for the lifetime of the process; the degradation is logged, never
raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from redis.asyncio import Redis as RedisClient
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from sidebar.settings import get_settings

logger = logging.getLogger(__name__)

_SIDEBAR_PREFIX = "sidebar"
SITES_KEY = f"{_SIDEBAR_PREFIX}:sites"
ACTIVE_SITE_KEY = f"{_SIDEBAR_PREFIX}:active_site_id"

_local_store: dict[str, str] = {}
_local_store_lock = asyncio.Lock()

_redis_client: RedisClient | None = None
_client_lock = asyncio.Lock()
_redis_disabled = False


async def local_store_get(key: str) -> str | None:
    """Return the raw JSON payload kept in the in-process fallback."""

    async with _local_store_lock:
        return _local_store.get(key)


async def local_store_set(key: str, payload: str) -> None:
    async with _local_store_lock:
        _local_store[key] = payload


def _is_redis_unavailable_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` means Redis could not be reached."""

    return isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError))


async def get_redis() -> RedisClient | None:
    """Return the shared Redis client, or ``None`` when it cannot be reached."""

    global _redis_client, _redis_disabled

    if _redis_disabled:
        logger.debug("Redis disabled after a previous failure; using local store.")
        return None

    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled:
            return None

        client = RedisClient.from_url(
            get_settings().redis_url, decode_responses=True, encoding="utf-8"
        )
        try:
            await client.ping()
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_unavailable_error(exc):
                logger.warning(
                    "Redis connection failed: %s. Site list will be kept in memory.",
                    exc,
                )
                _redis_disabled = True
                await client.aclose()
                return None
            raise

        _redis_client = client
        logger.info("Redis connection established successfully")
        return _redis_client


class StoreClient:
    """JSON get/set over Redis with a per-key in-process fallback.

    Only single-key atomicity is offered. Writes always land in the local
    fallback as well, so a Redis outage in the middle of a session does not
    lose the latest value.
    """

    def __init__(self, redis: RedisClient | None) -> None:
        self._redis = redis

    @property
    def is_persistent(self) -> bool:
        return self._redis is not None

    async def get_json(self, key: str) -> Any:
        payload: str | None = None
        if self._redis is not None:
            try:
                payload = await self._redis.get(key)
            except Exception as exc:  # type: ignore[broad-except]
                if not _is_redis_unavailable_error(exc):
                    raise
                logger.warning("Redis get failed for key %s: %s", key, exc)
                payload = await local_store_get(key)
        else:
            payload = await local_store_get(key)

        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable payload stored under %s", key)
            return None

    async def set_json(self, key: str, value: Any) -> None:
        encoded = json.dumps(value, ensure_ascii=False)
        await local_store_set(key, encoded)
        if self._redis is None:
            return
        try:
            await self._redis.set(key, encoded)
        except Exception as exc:  # type: ignore[broad-except]
            if not _is_redis_unavailable_error(exc):
                raise
            logger.warning("Redis set failed for key %s: %s", key, exc)

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        async with _local_store_lock:
            for key in keys:
                _local_store.pop(key, None)
        if self._redis is None:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:  # type: ignore[broad-except]
            if not _is_redis_unavailable_error(exc):
                raise
            logger.warning("Redis delete failed: %s", exc)


async def get_store_client() -> StoreClient:
    redis = await get_redis()
    return StoreClient(redis)


async def close_redis() -> None:
    """Close the global Redis connection gracefully."""

    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = False


__all__ = [
    "ACTIVE_SITE_KEY",
    "SITES_KEY",
    "StoreClient",
    "close_redis",
    "get_redis",
    "get_store_client",
    "local_store_get",
    "local_store_set",
]
