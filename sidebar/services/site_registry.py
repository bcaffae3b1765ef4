"""Ordered registry of sidebar sites mirrored to the persistent store.

The registry owns the in-memory order and writes the complete list back to the
store after every mutation. Mutations are serialized by a single
``asyncio.Lock`` so two concurrent requests cannot interleave between the
in-memory edit and the write that persists it.

Operations:
* ``load`` – read the stored list, seeding the default sites on first run.
* ``add``/``update``/``remove`` – CRUD on individual sites.
* ``reorder``/``drop`` – index-based and drag-based reordering.
* ``export_all``/``export_json`` – snapshot of the current order.
* ``import_merge`` – bulk import in ``replace`` or ``merge`` mode.
* ``set_active`` – remember the site shown in the content view.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import secrets
import string
import time
from collections.abc import Collection, Iterable
from typing import Any

from pydantic import ValidationError

from sidebar.schemas.site import (
    DEFAULT_SITE_COLOR,
    HEX_COLOR_PATTERN,
    DropPosition,
    ImportMode,
    ImportOutcome,
    ImportResult,
    RemoveResult,
    Site,
)
from sidebar.services.reorder import apply_drop, move_item
from sidebar.store import ACTIVE_SITE_KEY, SITES_KEY, StoreClient
from sidebar.utils.urls import ensure_scheme, extract_hostname

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "sidebar-sites.json"

DEFAULT_SITES: tuple[Site, ...] = (
    Site(id="chatgpt", name="ChatGPT", url="https://chat.openai.com", color="#10a37f"),
    Site(id="youtube", name="YouTube", url="https://www.youtube.com", color="#FF0000"),
    Site(id="whatsapp", name="WhatsApp", url="https://web.whatsapp.com", color="#25D366"),
    Site(id="github", name="GitHub", url="https://github.com", color="#24292e"),
    Site(
        id="translate",
        name="Google Translate",
        url="https://translate.google.com",
        color="#4285F4",
    ),
    Site(id="claude", name="Claude", url="https://claude.ai", color="#D4A574"),
    Site(id="gemini", name="Gemini", url="https://gemini.google.com", color="#1a73e8"),
)

_ID_ALPHABET = string.ascii_lowercase + string.digits


class SidebarError(ValueError):
    """Base class for malformed input rejected by the sidebar core."""


class SiteValidationError(SidebarError):
    """Raised when a site submitted by the user cannot be accepted."""


class ImportFormatError(SidebarError):
    """Raised when an import payload is not a JSON array of site objects."""


def generate_site_id(taken: Collection[str] = ()) -> str:
    """Return ``site_<epoch-ms>_<9 random chars>`` not present in ``taken``."""

    while True:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        candidate = f"site_{time.time_ns() // 1_000_000}_{suffix}"
        if candidate not in taken:
            return candidate


def validate_site_fields(name: str, url: str) -> tuple[str, str]:
    """Return the trimmed name and the scheme-normalized URL.

    Raises:
        SiteValidationError: when either field is blank or the URL has no host.
    """

    cleaned_name = (name or "").strip()
    cleaned_url = (url or "").strip()
    if not cleaned_name or not cleaned_url:
        raise SiteValidationError("Both a site name and a URL are required")

    normalized_url = ensure_scheme(cleaned_url)
    if extract_hostname(normalized_url) is None:
        raise SiteValidationError(f"'{cleaned_url}' is not a valid site address")
    return cleaned_name, normalized_url


def is_hex_color(value: Any) -> bool:
    return isinstance(value, str) and re.fullmatch(HEX_COLOR_PATTERN, value) is not None


def validate_site_color(color: str | None) -> str:
    """Return ``color``, or the default when blank.

    Raises:
        SiteValidationError: when the color is not a hex string.
    """

    cleaned = (color or "").strip()
    if not cleaned:
        return DEFAULT_SITE_COLOR
    if not is_hex_color(cleaned):
        raise SiteValidationError(f"'{cleaned}' is not a hex color")
    return cleaned


def _non_blank_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def coerce_imported_site(raw: Any, *, taken_ids: set[str]) -> Site | None:
    """Turn one imported JSON object into a :class:`Site`, or ``None`` if invalid.

    ``name`` and ``url`` must be non-blank strings. A missing or colliding
    ``id`` is replaced by a fresh one and a missing or non-hex ``color`` falls
    back to the default. Unknown keys are ignored. The chosen id is added to ``taken_ids``.
    """

    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    url = raw.get("url")
    if not _non_blank_string(name) or not _non_blank_string(url):
        return None

    site_id = raw.get("id")
    if not _non_blank_string(site_id) or site_id in taken_ids:
        site_id = generate_site_id(taken_ids)
    color = raw.get("color")
    if not is_hex_color(color):
        color = DEFAULT_SITE_COLOR

    site = Site(id=site_id, name=name, url=ensure_scheme(url), color=color)
    taken_ids.add(site.id)
    return site


def parse_import_payload(payload: str | bytes) -> list[Any]:
    """Decode the text of an import file into its list of raw entries.

    Raises:
        ImportFormatError: when the payload is not JSON or not a JSON array.
    """

    try:
        decoded = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ImportFormatError(
            "Could not read the file. Make sure it is a valid JSON export."
        ) from exc
    if not isinstance(decoded, list):
        raise ImportFormatError("The import file must contain a JSON array of sites")
    return decoded


def _sites_from_storage(raw: Iterable[Any]) -> list[Site]:
    sites: list[Site] = []
    seen: set[str] = set()
    for item in raw:
        try:
            site = Site.model_validate(item)
        except ValidationError as exc:
            logger.warning("Dropping invalid stored site %r: %s", item, exc)
            continue
        if site.id in seen:
            logger.warning("Dropping stored site with duplicate id %s", site.id)
            continue
        seen.add(site.id)
        sites.append(site)
    return sites


class SiteRegistry:
    """Owns the ordered site list for one sidebar session."""

    def __init__(self, store: StoreClient) -> None:
        self._store = store
        self._sites: list[Site] = []
        self._active_site_id: str | None = None
        self._lock = asyncio.Lock()

    @property
    def sites(self) -> list[Site]:
        return list(self._sites)

    @property
    def active_site_id(self) -> str | None:
        return self._active_site_id

    def get(self, site_id: str) -> Site | None:
        return next((site for site in self._sites if site.id == site_id), None)

    async def load(self) -> list[Site]:
        """Read the stored list, seeding and persisting defaults when it is empty."""

        async with self._lock:
            stored = await self._store.get_json(SITES_KEY)
            sites: list[Site] = []
            if isinstance(stored, list):
                sites = _sites_from_storage(stored)
            elif stored is not None:
                logger.warning("Ignoring stored site list of type %s", type(stored).__name__)

            if sites:
                self._sites = sites
            else:
                logger.info("No saved sites found; seeding %d defaults", len(DEFAULT_SITES))
                self._sites = list(DEFAULT_SITES)
                await self._persist()

            active = await self._store.get_json(ACTIVE_SITE_KEY)
            self._active_site_id = active if isinstance(active, str) and self.get(active) else None
            return self.sites

    async def add(self, name: str, url: str, color: str = DEFAULT_SITE_COLOR) -> Site:
        cleaned_name, normalized_url = validate_site_fields(name, url)
        cleaned_color = validate_site_color(color)
        async with self._lock:
            site = Site(
                id=generate_site_id({existing.id for existing in self._sites}),
                name=cleaned_name,
                url=normalized_url,
                color=cleaned_color,
            )
            self._sites.append(site)
            await self._persist()
        logger.info("Added site %s (%s)", site.id, site.url)
        return site

    async def update(
        self, site_id: str, name: str, url: str, color: str = DEFAULT_SITE_COLOR
    ) -> Site | None:
        """Replace a site's fields in place. Unknown ids are ignored."""

        cleaned_name, normalized_url = validate_site_fields(name, url)
        cleaned_color = validate_site_color(color)
        async with self._lock:
            index = self._index_of(site_id)
            if index is None:
                logger.debug("Ignoring update for unknown site %s", site_id)
                return None
            updated = self._sites[index].model_copy(
                update={
                    "name": cleaned_name,
                    "url": normalized_url,
                    "color": cleaned_color,
                }
            )
            self._sites[index] = updated
            await self._persist()
        return updated

    async def remove(self, site_id: str) -> RemoveResult:
        async with self._lock:
            index = self._index_of(site_id)
            if index is None:
                return RemoveResult(removed=False, was_active=False, sites=self.sites)

            del self._sites[index]
            was_active = site_id == self._active_site_id
            await self._persist()
            if was_active:
                self._active_site_id = None
                await self._store.delete(ACTIVE_SITE_KEY)
        logger.info("Removed site %s (active=%s)", site_id, was_active)
        return RemoveResult(removed=True, was_active=was_active, sites=self.sites)

    async def set_active(self, site_id: str) -> Site | None:
        async with self._lock:
            site = self.get(site_id)
            if site is None:
                return None
            self._active_site_id = site.id
            await self._store.set_json(ACTIVE_SITE_KEY, site.id)
            return site

    async def reorder(self, from_index: int, to_index: int) -> list[Site]:
        async with self._lock:
            reordered = move_item(self._sites, from_index, to_index)
            if reordered != self._sites:
                self._sites = reordered
                await self._persist()
            return self.sites

    async def drop(
        self, dragged_index: int, target_index: int, position: DropPosition
    ) -> list[Site]:
        async with self._lock:
            reordered = apply_drop(self._sites, dragged_index, target_index, position)
            if reordered != self._sites:
                self._sites = reordered
                await self._persist()
            return self.sites

    def export_all(self) -> list[Site]:
        return self.sites

    def export_json(self) -> str:
        """Render the export file: a pretty-printed JSON array of sites."""

        return json.dumps(
            [site.model_dump() for site in self._sites], indent=2, ensure_ascii=False
        )

    async def import_merge(self, raw_sites: Any, mode: ImportMode | str) -> ImportResult:
        """Import raw site objects, replacing or extending the registry.

        Invalid entries are skipped. When nothing valid remains the registry is
        left untouched and ``NOTHING_TO_IMPORT`` is reported. In ``merge`` mode
        entries whose URL is already registered are skipped as well.

        Raises:
            ValueError: when ``mode`` is not a known import mode.
            ImportFormatError: when ``raw_sites`` is not a list.
        """

        mode = ImportMode(mode)
        if not isinstance(raw_sites, list):
            raise ImportFormatError("The import file must contain a JSON array of sites")

        async with self._lock:
            taken_ids: set[str] = set()
            if mode is ImportMode.MERGE:
                taken_ids = {site.id for site in self._sites}

            valid: list[Site] = []
            for raw in raw_sites:
                site = coerce_imported_site(raw, taken_ids=taken_ids)
                if site is not None:
                    valid.append(site)

            if not valid:
                return ImportResult(
                    outcome=ImportOutcome.NOTHING_TO_IMPORT,
                    imported=0,
                    skipped=len(raw_sites),
                    sites=self.sites,
                )

            if mode is ImportMode.REPLACE:
                added = valid
                self._sites = list(valid)
                if self._active_site_id is not None and self.get(self._active_site_id) is None:
                    self._active_site_id = None
                    await self._store.delete(ACTIVE_SITE_KEY)
            else:
                existing_urls = {site.url for site in self._sites}
                added = [site for site in valid if site.url not in existing_urls]
                self._sites = [*self._sites, *added]

            await self._persist()

        logger.info("Imported %d site(s) in %s mode", len(added), mode.value)
        return ImportResult(
            outcome=ImportOutcome.IMPORTED,
            imported=len(added),
            skipped=len(raw_sites) - len(added),
            sites=self.sites,
        )

    def _index_of(self, site_id: str) -> int | None:
        return next(
            (index for index, site in enumerate(self._sites) if site.id == site_id),
            None,
        )

    async def _persist(self) -> None:
        await self._store.set_json(SITES_KEY, [site.model_dump() for site in self._sites])


__all__ = [
    "DEFAULT_SITES",
    "EXPORT_FILENAME",
    "ImportFormatError",
    "SidebarError",
    "SiteRegistry",
    "SiteValidationError",
    "coerce_imported_site",
    "generate_site_id",
    "parse_import_payload",
    "is_hex_color",
    "validate_site_color",
    "validate_site_fields",
]
