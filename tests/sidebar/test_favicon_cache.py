"""Favicon cache behaviour against a temp SQLite store and a mocked network."""

from __future__ import annotations

import base64
import logging
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import func, select

from sidebar.db.connection import create_engine, init_favicon_store
from sidebar.db.models import FaviconStoreMeta
from sidebar.db.repositories import FaviconRepository
from sidebar.services.favicon_cache import FaviconCache, encode_data_url
from sidebar.services.favicon_sources import DEFAULT_FAVICON_SOURCES
from sidebar.settings import FAVICON_STORE_NAME, FAVICON_STORE_VERSION
from tests.sidebar.support.doubles import ICON_BYTES, NOW, IconServer

DDG = "https://icons.duckduckgo.com/ip3/github.com.ico"
GOOGLE = "https://www.google.com/s2/favicons?domain=github.com&sz=128"
FAVICON_IO = "https://favicon.io/favicon/github.com"
SITE_ICO = "https://github.com/favicon.ico"


def _build_cache(repository: FaviconRepository, server: IconServer, clock) -> FaviconCache:
    return FaviconCache(repository, server.client(), clock=clock)


def test_encode_data_url_uses_response_mime_type() -> None:
    assert encode_data_url(b"abc", "image/png; charset=binary") == (
        "data:image/png;base64," + base64.b64encode(b"abc").decode()
    )
    assert encode_data_url(b"abc", None).startswith("data:application/octet-stream;base64,")


def test_source_chain_order() -> None:
    assert [source.url_for("github.com") for source in DEFAULT_FAVICON_SOURCES] == [
        DDG,
        GOOGLE,
        FAVICON_IO,
        SITE_ICO,
        "https://github.com/apple-touch-icon.png",
        "https://github.com/apple-touch-icon-precomposed.png",
    ]


@pytest.mark.asyncio
async def test_fresh_entry_is_served_without_network(
    favicon_session_factory, icon_server: IconServer, clock
) -> None:
    repository = FaviconRepository(favicon_session_factory)
    await repository.put("github.com", "data:image/png;base64,AAAA", NOW - timedelta(days=6))
    cache = _build_cache(repository, icon_server, clock)

    assert await cache.resolve_icon("https://github.com/openai") == "data:image/png;base64,AAAA"
    assert icon_server.requested == []


@pytest.mark.asyncio
async def test_stale_entry_is_refetched_and_overwritten(
    favicon_session_factory, icon_server: IconServer, clock
) -> None:
    repository = FaviconRepository(favicon_session_factory)
    await repository.put("github.com", "data:image/png;base64,OLD", NOW - timedelta(days=8))
    icon_server.responses[DDG] = httpx.Response(
        200, content=ICON_BYTES, headers={"content-type": "image/x-icon"}
    )
    cache = _build_cache(repository, icon_server, clock)

    data_url = await cache.resolve_icon("https://github.com")

    assert data_url == encode_data_url(ICON_BYTES, "image/x-icon")
    assert icon_server.requested == [DDG]
    entry = await repository.get("github.com")
    assert entry is not None
    assert entry.data_url == data_url
    assert entry.fetched_at == NOW


@pytest.mark.asyncio
async def test_undersized_and_failed_sources_are_skipped(
    favicon_session_factory, icon_server: IconServer, clock
) -> None:
    icon_server.responses[DDG] = httpx.Response(200, content=b"\x00" * 50)
    icon_server.responses[GOOGLE] = httpx.Response(500, content=ICON_BYTES)
    icon_server.responses[FAVICON_IO] = httpx.Response(200, content=ICON_BYTES)
    cache = _build_cache(FaviconRepository(favicon_session_factory), icon_server, clock)

    data_url = await cache.resolve_icon("https://github.com")

    assert data_url is not None
    assert data_url.startswith("data:application/octet-stream;base64,")
    assert icon_server.requested == [DDG, GOOGLE, FAVICON_IO]


@pytest.mark.asyncio
async def test_transport_errors_fall_through_to_next_source(
    favicon_session_factory, clock
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "icons.duckduckgo.com":
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(200, content=ICON_BYTES, headers={"content-type": "image/png"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    cache = FaviconCache(FaviconRepository(favicon_session_factory), client, clock=clock)

    assert (await cache.resolve_icon("https://github.com")).startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_exhausted_chain_returns_none_and_writes_nothing(
    favicon_session_factory, icon_server: IconServer, clock
) -> None:
    repository = FaviconRepository(favicon_session_factory)
    cache = _build_cache(repository, icon_server, clock)

    assert await cache.resolve_icon("https://github.com") is None
    assert len(icon_server.requested) == len(DEFAULT_FAVICON_SOURCES)
    assert await repository.get("github.com") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["github.com", "not a url", "https://"])
async def test_malformed_site_url_returns_none(
    favicon_session_factory, icon_server: IconServer, clock, url: str
) -> None:
    cache = _build_cache(FaviconRepository(favicon_session_factory), icon_server, clock)

    assert await cache.resolve_icon(url) is None
    assert icon_server.requested == []


@pytest.mark.asyncio
async def test_unavailable_store_still_resolves_icons(icon_server: IconServer, clock) -> None:
    icon_server.responses[DDG] = httpx.Response(200, content=ICON_BYTES)
    repository = FaviconRepository(None)
    cache = _build_cache(repository, icon_server, clock)

    assert not repository.available
    assert await cache.resolve_icon("https://github.com") is not None
    assert await cache.resolve_icon("https://github.com") is not None
    assert icon_server.requested == [DDG, DDG]


@pytest.mark.asyncio
async def test_init_favicon_store_records_name_and_version_once(
    tmp_path, caplog: pytest.LogCaptureFixture
) -> None:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'icons.db'}")
    try:
        await init_favicon_store(engine)
        await init_favicon_store(engine)

        async with engine.connect() as conn:
            count = await conn.scalar(select(func.count()).select_from(FaviconStoreMeta))
            version = await conn.scalar(
                select(FaviconStoreMeta.version).where(
                    FaviconStoreMeta.name == FAVICON_STORE_NAME
                )
            )
        assert count == 1
        assert version == FAVICON_STORE_VERSION

        async with engine.begin() as conn:
            await conn.execute(FaviconStoreMeta.__table__.update().values(version=99))
        with caplog.at_level(logging.WARNING, logger="sidebar.db.connection"):
            await init_favicon_store(engine)
        assert "version 99" in caplog.text
    finally:
        await engine.dispose()
