"""Shared fixtures: an isolated store, a temp favicon DB and a fake icon server."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import sidebar.store as store_module
from sidebar.db.connection import create_engine, create_session_factory, init_favicon_store
from sidebar.services.site_registry import SiteRegistry
from sidebar.store import StoreClient
from tests.sidebar.support.doubles import NOW, IconServer, InMemoryRedis


@pytest.fixture(autouse=True)
def _isolated_store(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test with an empty fallback store and no shared Redis client."""

    monkeypatch.setattr(store_module, "_local_store", {})
    monkeypatch.setattr(store_module, "_redis_client", None)
    monkeypatch.setattr(store_module, "_redis_disabled", False)


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def store(fake_redis: InMemoryRedis) -> StoreClient:
    return StoreClient(fake_redis)


@pytest.fixture
def registry(store: StoreClient) -> SiteRegistry:
    return SiteRegistry(store)


@pytest.fixture
def icon_server() -> IconServer:
    return IconServer()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest_asyncio.fixture
async def favicon_session_factory(
    tmp_path,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Favicon store backed by a throwaway SQLite file."""

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'favicons.db'}")
    await init_favicon_store(engine)
    yield create_session_factory(engine)
    await engine.dispose()
