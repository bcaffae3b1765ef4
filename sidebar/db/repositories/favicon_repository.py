"""Persistence for favicon cache rows.

The favicon cache is an optimisation, so storage problems never propagate:
read failures behave like a miss and write failures are skipped. Both are
logged so an unwritable database is still visible to operators.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sidebar.db.models import Favicon
from sidebar.schemas.favicon import FaviconEntry

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way back; treat naive timestamps as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FaviconRepository:
    """Domain-keyed access to the ``favicons`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None) -> None:
        self._session_factory = session_factory

    @property
    def available(self) -> bool:
        return self._session_factory is not None

    async def get(self, domain: str) -> FaviconEntry | None:
        if self._session_factory is None:
            return None
        try:
            async with self._session_factory() as session:
                row = await session.get(Favicon, domain)
                if row is None:
                    return None
                return FaviconEntry(
                    domain=row.domain,
                    data_url=row.data_url,
                    fetched_at=_as_utc(row.fetched_at),
                )
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Favicon cache read failed for %s: %s", domain, exc)
            return None

    async def put(self, domain: str, data_url: str, fetched_at: datetime) -> bool:
        """Insert or overwrite the row for ``domain``. Returns ``False`` on failure."""

        if self._session_factory is None:
            return False
        try:
            async with self._session_factory() as session:
                await session.merge(
                    Favicon(domain=domain, data_url=data_url, fetched_at=fetched_at)
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Favicon cache write failed for %s: %s", domain, exc)
            return False
        return True


__all__ = ["FaviconRepository"]
