"""Schemas for activity signals and the hibernate/content-view snapshot."""

from __future__ import annotations

from pydantic import BaseModel, Field

from sidebar.services.hibernate import ActivityKind, HibernateStatus


class ActivityRequest(BaseModel):
    kind: ActivityKind = Field(
        ActivityKind.POINTER_MOVE, description="Which user interaction was observed"
    )


class ActivityStateResponse(BaseModel):
    """What the client frame should currently show."""

    status: HibernateStatus
    idle_timeout_seconds: float
    seconds_idle: float = Field(..., ge=0)
    pending_url: str | None = Field(
        None, description="URL restored on the next activity while hibernated"
    )
    view_src: str = Field(..., description="Source the embedded frame should display")
    current_url: str | None = None
    overlay_visible: bool = False


__all__ = ["ActivityRequest", "ActivityStateResponse"]
