"""Pydantic schemas describing cached favicons."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FaviconEntry(BaseModel):
    """A cached icon row as seen by the service layer."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    domain: str
    data_url: str = Field(..., description="``data:<mime>;base64,<payload>``")
    fetched_at: datetime


class FaviconResponse(BaseModel):
    """Icon lookup result. ``data_url`` is ``None`` when every source failed."""

    url: str
    domain: str | None = None
    data_url: str | None = None


__all__ = ["FaviconEntry", "FaviconResponse"]
