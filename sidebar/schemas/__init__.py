"""Pydantic schemas for API requests and responses."""

from sidebar.schemas.favicon import FaviconEntry, FaviconResponse  # noqa: F401
from sidebar.schemas.site import (  # noqa: F401
    DropPosition,
    DropRequest,
    ImportMode,
    ImportOutcome,
    ImportRequest,
    ImportResult,
    OpenSiteResponse,
    RemoveResult,
    ReorderRequest,
    Site,
    SiteCreate,
    SiteListResponse,
    SiteUpdate,
)
