"""One sidebar session: registry, favicon cache, content view and idle controller.

The session object is the explicit owner of all per-sidebar state. The web
layer and the CLI call its methods instead of reaching into module globals,
which also lets tests build as many isolated sessions as they need.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sidebar.db.repositories.favicon_repository import FaviconRepository
from sidebar.schemas.site import ImportMode, ImportResult, RemoveResult, Site
from sidebar.services.content_view import EmbeddedView
from sidebar.services.favicon_cache import FaviconCache
from sidebar.services.hibernate import IdleController
from sidebar.services.site_registry import SiteRegistry
from sidebar.settings import AppSettings
from sidebar.store import StoreClient


@dataclass
class SidebarSession:
    registry: SiteRegistry
    favicons: FaviconCache
    view: EmbeddedView
    idle: IdleController

    async def start(self) -> None:
        await self.registry.load()
        self.idle.start()

    def stop(self) -> None:
        self.idle.stop()

    async def open_site(self, site_id: str) -> Site | None:
        """Mark ``site_id`` active and load it into the content view."""

        site = await self.registry.set_active(site_id)
        if site is None:
            return None
        self.view.load(site.url)
        self.idle.content_loaded(site.url)
        return site

    def refresh(self) -> str | None:
        url = self.view.refresh()
        if url is not None:
            self.idle.content_loaded(url)
        return url

    async def remove_site(self, site_id: str) -> RemoveResult:
        result = await self.registry.remove(site_id)
        if result.was_active:
            self._clear_view()
        return result

    async def import_sites(self, raw_sites: object, mode: ImportMode) -> ImportResult:
        previously_active = self.registry.active_site_id
        result = await self.registry.import_merge(raw_sites, mode)
        if previously_active is not None and self.registry.active_site_id is None:
            self._clear_view()
        return result

    def _clear_view(self) -> None:
        self.view.clear()
        self.idle.content_cleared()


def build_session(
    settings: AppSettings,
    *,
    store: StoreClient,
    session_factory: async_sessionmaker[AsyncSession] | None,
    http_client: httpx.AsyncClient,
) -> SidebarSession:
    """Wire a :class:`SidebarSession` from infrastructure handles and settings."""

    view = EmbeddedView()
    favicons = FaviconCache(
        FaviconRepository(session_factory),
        http_client,
        ttl=timedelta(seconds=settings.favicon_ttl_seconds),
        min_bytes=settings.favicon_min_bytes,
        timeout_seconds=settings.favicon_fetch_timeout_seconds,
    )
    return SidebarSession(
        registry=SiteRegistry(store),
        favicons=favicons,
        view=view,
        idle=IdleController(view, idle_timeout=settings.idle_timeout_seconds),
    )


__all__ = ["SidebarSession", "build_session"]
