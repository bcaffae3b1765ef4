"""Domain-keyed favicon cache with a remote fallback chain.

``FaviconCache.resolve_icon`` is called once per rendered site. A fresh cache
row answers without touching the network; otherwise each configured source is
tried in order and the first acceptable image is cached and returned. Every
attempt produces an explicit :class:`IconFetched` or :class:`IconRejected`
value, and the chain stops at the first ``IconFetched``.

Resolutions for the same domain are not deduplicated: two rows pointing at
one host may both hit the network, and the later write simply wins.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Final

import httpx

from sidebar.db.repositories.favicon_repository import FaviconRepository
from sidebar.schemas.favicon import FaviconEntry
from sidebar.services.favicon_sources import DEFAULT_FAVICON_SOURCES, FaviconSource
from sidebar.settings import (
    DEFAULT_FAVICON_FETCH_TIMEOUT_SECONDS,
    DEFAULT_FAVICON_MIN_BYTES,
    DEFAULT_FAVICON_TTL_DAYS,
)
from sidebar.utils.urls import extract_hostname

logger = logging.getLogger(__name__)

_FALLBACK_CONTENT_TYPE: Final[str] = "application/octet-stream"
FAVICON_HTTP_HEADERS: Final[dict[str, str]] = {
    "User-Agent": "SidebarSites-FaviconFetcher/1.0",
    "Accept": "image/*,*/*;q=0.8",
}


@dataclass(frozen=True, slots=True)
class IconFetched:
    source: FaviconSource
    data_url: str


@dataclass(frozen=True, slots=True)
class IconRejected:
    source: FaviconSource
    reason: str


FetchAttempt = IconFetched | IconRejected


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def encode_data_url(payload: bytes, content_type: str | None) -> str:
    """Encode ``payload`` as a base64 ``data:`` URL using the response MIME type."""

    mime = (content_type or "").split(";", 1)[0].strip().lower() or _FALLBACK_CONTENT_TYPE
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime};base64,{encoded}"


async def first_fetched(
    sources: Sequence[FaviconSource],
    attempt: Callable[[FaviconSource], Awaitable[FetchAttempt]],
) -> IconFetched | None:
    """Run ``attempt`` over ``sources`` in order, stopping at the first success."""

    for source in sources:
        outcome = await attempt(source)
        if isinstance(outcome, IconFetched):
            return outcome
        logger.debug("Favicon source %s rejected: %s", source.name, outcome.reason)
    return None


def create_http_client() -> httpx.AsyncClient:
    """Build the HTTP client shared by favicon lookups."""

    return httpx.AsyncClient(headers=FAVICON_HTTP_HEADERS, follow_redirects=True)


class FaviconCache:
    """Get-or-fetch access to favicons keyed by hostname."""

    def __init__(
        self,
        repository: FaviconRepository,
        http_client: httpx.AsyncClient,
        *,
        sources: Sequence[FaviconSource] = DEFAULT_FAVICON_SOURCES,
        ttl: timedelta = timedelta(days=DEFAULT_FAVICON_TTL_DAYS),
        min_bytes: int = DEFAULT_FAVICON_MIN_BYTES,
        timeout_seconds: float = DEFAULT_FAVICON_FETCH_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._http = http_client
        self._sources = tuple(sources)
        self._ttl = ttl
        self._min_bytes = min_bytes
        self._timeout = timeout_seconds
        self._clock = clock

    @property
    def sources(self) -> tuple[FaviconSource, ...]:
        return self._sources

    def is_fresh(self, entry: FaviconEntry, now: datetime | None = None) -> bool:
        reference = now or self._clock()
        return reference - entry.fetched_at < self._ttl

    async def lookup(self, domain: str) -> FaviconEntry | None:
        """Return the cached row for ``domain`` when it has not expired."""

        entry = await self._repository.get(domain)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    async def resolve_icon(self, site_url: str) -> str | None:
        """Return a ``data:`` URL for the site's icon, or ``None``.

        ``None`` covers a malformed ``site_url`` and an exhausted source chain;
        in the latter case nothing is written so the next call retries.
        """

        domain = extract_hostname(site_url)
        if domain is None:
            logger.debug("Cannot derive a domain from %r", site_url)
            return None

        cached = await self.lookup(domain)
        if cached is not None:
            return cached.data_url

        async def attempt(source: FaviconSource) -> FetchAttempt:
            return await self._fetch_from(source, domain)

        fetched = await first_fetched(self._sources, attempt)
        if fetched is None:
            logger.info("No favicon source produced an icon for %s", domain)
            return None

        await self._repository.put(domain, fetched.data_url, self._clock())
        logger.debug("Cached favicon for %s from %s", domain, fetched.source.name)
        return fetched.data_url

    async def _fetch_from(self, source: FaviconSource, domain: str) -> FetchAttempt:
        url = source.url_for(domain)
        try:
            response = await self._http.get(url, timeout=self._timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return IconRejected(source, f"transport error: {type(exc).__name__}")

        if not response.is_success:
            return IconRejected(source, f"HTTP {response.status_code}")

        payload = response.content
        if len(payload) < self._min_bytes:
            return IconRejected(source, f"undersized payload ({len(payload)} bytes)")

        return IconFetched(
            source, encode_data_url(payload, response.headers.get("content-type"))
        )


__all__ = [
    "FAVICON_HTTP_HEADERS",
    "FaviconCache",
    "FetchAttempt",
    "IconFetched",
    "IconRejected",
    "create_http_client",
    "encode_data_url",
    "first_fetched",
]
