"""FastAPI dependency wiring for the sidebar session.

The lifespan hook builds one :class:`SidebarSession` and stores it on
``app.state``; routers resolve it through these helpers so tests can swap in
their own session with ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from sidebar.services.favicon_cache import FaviconCache
from sidebar.services.session import SidebarSession
from sidebar.services.site_registry import SiteRegistry


def get_sidebar_session(request: Request) -> SidebarSession:
    session = getattr(request.app.state, "sidebar_session", None)
    if session is None:
        raise RuntimeError("Sidebar session has not been initialised")
    return session


def get_site_registry(
    session: SidebarSession = Depends(get_sidebar_session),
) -> SiteRegistry:
    return session.registry


def get_favicon_cache(
    session: SidebarSession = Depends(get_sidebar_session),
) -> FaviconCache:
    return session.favicons


__all__ = ["get_favicon_cache", "get_sidebar_session", "get_site_registry"]
