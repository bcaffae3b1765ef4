"""Pydantic schemas for sites, registry mutations and import/export."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SITE_COLOR = "#4a9eff"
HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$"


class Site(BaseModel):
    """A quick-launch entry owned by the registry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Opaque identifier, stable for the site's lifetime")
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1, description="Absolute http(s) URL")
    color: str = Field(
        DEFAULT_SITE_COLOR, pattern=HEX_COLOR_PATTERN, description="Hex color of the letter icon"
    )


class SiteCreate(BaseModel):
    """Payload submitted by the add-site dialog."""

    name: str = Field(..., description="Display name; surrounding whitespace is ignored")
    url: str = Field(..., description="URL as typed; ``https://`` is added when missing")
    color: str = Field(DEFAULT_SITE_COLOR, pattern=HEX_COLOR_PATTERN)


class SiteUpdate(SiteCreate):
    """Payload submitted by the edit-site dialog. Every field is replaced."""


class ReorderRequest(BaseModel):
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., description="Clamped into the registry bounds")


class DropPosition(str, Enum):
    ABOVE = "above"
    BELOW = "below"


class DropRequest(BaseModel):
    """Result of a drag gesture: which row moved and where it landed."""

    dragged_index: int = Field(..., ge=0)
    target_index: int = Field(..., ge=0)
    position: DropPosition | None = Field(
        None,
        description="Explicit side of the target. Derived from the pointer when omitted.",
    )
    pointer_y: float | None = None
    target_top: float | None = None
    target_height: float | None = Field(None, ge=0)


class ImportMode(str, Enum):
    REPLACE = "replace"
    MERGE = "merge"


class ImportOutcome(str, Enum):
    IMPORTED = "imported"
    NOTHING_TO_IMPORT = "nothing_to_import"


class ImportRequest(BaseModel):
    """Raw entries are validated one by one so a bad row never fails the batch."""

    mode: ImportMode = ImportMode.MERGE
    sites: list[Any] = Field(default_factory=list)


class ImportResult(BaseModel):
    outcome: ImportOutcome
    imported: int = Field(0, ge=0, description="Entries added to the registry")
    skipped: int = Field(0, ge=0, description="Invalid or duplicate entries ignored")
    sites: list[Site] = Field(default_factory=list)


class RemoveResult(BaseModel):
    removed: bool
    was_active: bool = Field(
        False,
        description="True when the removed site was the one shown in the content view.",
    )
    sites: list[Site] = Field(default_factory=list)


class SiteListResponse(BaseModel):
    total: int
    active_site_id: str | None = None
    sites: list[Site]


class OpenSiteResponse(BaseModel):
    site: Site
    view_src: str


__all__ = [
    "DEFAULT_SITE_COLOR",
    "DropPosition",
    "DropRequest",
    "HEX_COLOR_PATTERN",
    "ImportMode",
    "ImportOutcome",
    "ImportRequest",
    "ImportResult",
    "OpenSiteResponse",
    "RemoveResult",
    "ReorderRequest",
    "Site",
    "SiteCreate",
    "SiteListResponse",
    "SiteUpdate",
]
