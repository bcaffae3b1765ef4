from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from sidebar.db.models import Base, FaviconStoreMeta
from sidebar.settings import FAVICON_STORE_NAME, FAVICON_STORE_VERSION, get_settings

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Return the favicon database URL, rejecting blank values early."""

    database_url = get_settings().favicon_database_url.strip()
    if not database_url:
        raise RuntimeError(
            "FAVICON_DATABASE_URL is set but empty. Provide an async SQLAlchemy URL."
        )
    return database_url


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""

    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    database = url.database
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_engine(database_url: str | None = None) -> AsyncEngine:
    url = database_url or get_database_url()
    _ensure_sqlite_directory(url)
    return create_async_engine(url, future=True, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_favicon_store(engine: AsyncEngine) -> None:
    """Create the favicon tables and record the store name/version if absent."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        meta = await session.scalar(
            select(FaviconStoreMeta).where(FaviconStoreMeta.name == FAVICON_STORE_NAME)
        )
        if meta is None:
            session.add(
                FaviconStoreMeta(name=FAVICON_STORE_NAME, version=FAVICON_STORE_VERSION)
            )
            await session.commit()
            logger.info(
                "Created favicon store %s (version %d)",
                FAVICON_STORE_NAME,
                FAVICON_STORE_VERSION,
            )
        elif meta.version != FAVICON_STORE_VERSION:
            logger.warning(
                "Favicon store %s is at version %d, expected %d",
                FAVICON_STORE_NAME,
                meta.version,
                FAVICON_STORE_VERSION,
            )


# Global engine/session instances shared by the API process.
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the global engine instance."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create a session factory bound to the shared engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
