"""Favicon lookup endpoint backed by the persistent favicon cache."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from sidebar.schemas.favicon import FaviconResponse
from sidebar.services.dependencies import get_favicon_cache
from sidebar.services.favicon_cache import FaviconCache
from sidebar.utils.urls import extract_hostname

router = APIRouter()


@router.get("", response_model=FaviconResponse)
async def get_favicon(
    url: str = Query(..., min_length=1, description="Absolute URL of the site"),
    cache: FaviconCache = Depends(get_favicon_cache),
) -> FaviconResponse:
    """Resolve the site's icon as a ``data:`` URL.

    ``data_url`` is ``null`` when no source produced an icon; clients then keep
    the colored letter icon.
    """

    data_url = await cache.resolve_icon(url)
    return FaviconResponse(url=url, domain=extract_hostname(url), data_url=data_url)
