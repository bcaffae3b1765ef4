"""Tests for the Redis-backed JSON store and its in-process fallback."""

from __future__ import annotations

import json
import logging

import pytest

import sidebar.store as store_module
from sidebar.store import (
    SITES_KEY,
    StoreClient,
    get_redis,
    local_store_get,
)
from tests.sidebar.support.doubles import InMemoryRedis, UnreachableRedis


@pytest.mark.asyncio
async def test_set_and_get_json_round_trip(store: StoreClient, fake_redis: InMemoryRedis) -> None:
    await store.set_json(SITES_KEY, [{"id": "a", "name": "Ä"}])

    assert await store.get_json(SITES_KEY) == [{"id": "a", "name": "Ä"}]
    assert json.loads(fake_redis.data[SITES_KEY]) == [{"id": "a", "name": "Ä"}]
    assert store.is_persistent


@pytest.mark.asyncio
async def test_missing_key_returns_none(store: StoreClient) -> None:
    assert await store.get_json("sidebar:missing") is None


@pytest.mark.asyncio
async def test_undecodable_payload_is_discarded(
    store: StoreClient, fake_redis: InMemoryRedis, caplog: pytest.LogCaptureFixture
) -> None:
    fake_redis.data[SITES_KEY] = "{not json"

    with caplog.at_level(logging.WARNING, logger="sidebar.store"):
        assert await store.get_json(SITES_KEY) is None

    assert "undecodable" in caplog.text


@pytest.mark.asyncio
async def test_without_redis_values_live_in_process() -> None:
    client = StoreClient(None)

    await client.set_json("sidebar:active_site_id", "github")

    assert not client.is_persistent
    assert await client.get_json("sidebar:active_site_id") == "github"
    assert await local_store_get("sidebar:active_site_id") == '"github"'


@pytest.mark.asyncio
async def test_unreachable_redis_falls_back_to_local_store(
    caplog: pytest.LogCaptureFixture,
) -> None:
    client = StoreClient(UnreachableRedis())

    with caplog.at_level(logging.WARNING, logger="sidebar.store"):
        await client.set_json(SITES_KEY, ["x"])
        value = await client.get_json(SITES_KEY)
        await client.delete(SITES_KEY)

    assert value == ["x"]
    assert await local_store_get(SITES_KEY) is None
    assert "Redis set failed" in caplog.text
    assert "Redis get failed" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_redis_errors_propagate() -> None:
    class BrokenRedis(InMemoryRedis):
        async def get(self, key: str) -> str | None:
            raise RuntimeError("protocol bug")

    client = StoreClient(BrokenRedis())

    with pytest.raises(RuntimeError, match="protocol bug"):
        await client.get_json(SITES_KEY)


@pytest.mark.asyncio
async def test_get_redis_disables_itself_after_failed_ping(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    created: list[UnreachableRedis] = []

    def fake_from_url(*_args: object, **_kwargs: object) -> UnreachableRedis:
        client = UnreachableRedis()
        created.append(client)
        return client

    monkeypatch.setattr(store_module.RedisClient, "from_url", fake_from_url)

    assert await get_redis() is None
    assert await get_redis() is None
    assert len(created) == 1


@pytest.mark.asyncio
async def test_get_redis_reuses_healthy_client(monkeypatch: pytest.MonkeyPatch) -> None:
    healthy = InMemoryRedis()
    monkeypatch.setattr(store_module.RedisClient, "from_url", lambda *_a, **_k: healthy)

    assert await get_redis() is healthy
    assert await get_redis() is healthy
