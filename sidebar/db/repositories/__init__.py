"""Repository package for database access."""

from sidebar.db.repositories.favicon_repository import FaviconRepository

__all__ = ["FaviconRepository"]
