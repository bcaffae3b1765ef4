"""Activity signals feeding the idle/hibernate controller."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sidebar.schemas.activity import ActivityRequest, ActivityStateResponse
from sidebar.services.dependencies import get_sidebar_session
from sidebar.services.session import SidebarSession

router = APIRouter()


def _snapshot(session: SidebarSession) -> ActivityStateResponse:
    state = session.idle.state
    return ActivityStateResponse(
        status=state.status,
        idle_timeout_seconds=session.idle.idle_timeout,
        seconds_idle=session.idle.seconds_idle(),
        pending_url=state.pending_url,
        view_src=session.view.src,
        current_url=session.view.current_url,
        overlay_visible=session.view.overlay_visible,
    )


@router.post("", response_model=ActivityStateResponse)
async def report_activity(
    payload: ActivityRequest,
    session: SidebarSession = Depends(get_sidebar_session),
) -> ActivityStateResponse:
    """Record user activity, waking a hibernated view."""

    session.idle.notify_activity(payload.kind)
    return _snapshot(session)


@router.get("/state", response_model=ActivityStateResponse)
async def activity_state(
    session: SidebarSession = Depends(get_sidebar_session),
) -> ActivityStateResponse:
    return _snapshot(session)


@router.post("/refresh", response_model=ActivityStateResponse)
async def refresh_view(
    session: SidebarSession = Depends(get_sidebar_session),
) -> ActivityStateResponse:
    """Reload the active site in the content view."""

    session.refresh()
    return _snapshot(session)
