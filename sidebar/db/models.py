"""SQLAlchemy ORM models for the favicon cache database.

The database holds one row per domain plus a single metadata row naming the
store and its schema version. Both tables are created on first open when they
do not exist yet.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Favicon(Base):
    """Resolved icon for a hostname, stored as a ``data:`` URL."""

    __tablename__ = "favicons"

    domain: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        doc="Hostname only: no scheme, port or path.",
    )
    data_url: Mapped[str] = mapped_column(Text, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc=(
            "When the icon was downloaded. Rows older than the configured TTL"
            " are ignored by lookups and overwritten by the next fetch."
        ),
    )


class FaviconStoreMeta(Base):
    """Name/version pair identifying the favicon store layout."""

    __tablename__ = "favicon_store_meta"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


__all__ = ["Base", "Favicon", "FaviconStoreMeta", "utcnow"]
