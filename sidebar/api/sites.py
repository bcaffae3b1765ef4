"""FastAPI router exposing the site registry."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from sidebar.schemas.site import (
    DropRequest,
    ImportMode,
    ImportRequest,
    ImportResult,
    OpenSiteResponse,
    ReorderRequest,
    Site,
    SiteCreate,
    SiteListResponse,
    SiteUpdate,
)
from sidebar.services.dependencies import get_sidebar_session, get_site_registry
from sidebar.services.reorder import drop_position
from sidebar.services.session import SidebarSession
from sidebar.services.site_registry import (
    EXPORT_FILENAME,
    SiteRegistry,
    SiteValidationError,
    parse_import_payload,
)

router = APIRouter()


def _list_response(registry: SiteRegistry) -> SiteListResponse:
    sites = registry.sites
    return SiteListResponse(
        total=len(sites), active_site_id=registry.active_site_id, sites=sites
    )


@router.get("", response_model=SiteListResponse)
async def list_sites(
    registry: SiteRegistry = Depends(get_site_registry),
) -> SiteListResponse:
    """Return every site in display order."""

    return _list_response(registry)


@router.post("", response_model=Site, status_code=status.HTTP_201_CREATED)
async def create_site(
    payload: SiteCreate,
    registry: SiteRegistry = Depends(get_site_registry),
) -> Site:
    return await registry.add(payload.name, payload.url, payload.color)


@router.get("/export")
async def export_sites(
    registry: SiteRegistry = Depends(get_site_registry),
) -> Response:
    """Download the registry as ``sidebar-sites.json``."""

    return Response(
        content=registry.export_json().encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/import", response_model=ImportResult)
async def import_sites(
    payload: ImportRequest,
    session: SidebarSession = Depends(get_sidebar_session),
) -> ImportResult:
    return await session.import_sites(payload.sites, payload.mode)


@router.post("/import/file", response_model=ImportResult)
async def import_sites_file(
    request: Request,
    mode: ImportMode = Query(ImportMode.MERGE, description="replace or merge"),
    session: SidebarSession = Depends(get_sidebar_session),
) -> ImportResult:
    """Import the raw contents of a previously exported file."""

    raw_sites = parse_import_payload(await request.body())
    return await session.import_sites(raw_sites, mode)


@router.post("/reorder", response_model=SiteListResponse)
async def reorder_sites(
    payload: ReorderRequest,
    registry: SiteRegistry = Depends(get_site_registry),
) -> SiteListResponse:
    await registry.reorder(payload.from_index, payload.to_index)
    return _list_response(registry)


@router.post("/drop", response_model=SiteListResponse)
async def drop_site(
    payload: DropRequest,
    registry: SiteRegistry = Depends(get_site_registry),
) -> SiteListResponse:
    """Finish a drag gesture.

    The side of the target is taken from ``position`` when given; otherwise it
    is derived from the pointer's offset against the target row's midpoint.
    """

    position = payload.position
    if position is None:
        if None in (payload.pointer_y, payload.target_top, payload.target_height):
            raise SiteValidationError(
                "A drop needs either a position or pointer_y, target_top and target_height"
            )
        position = drop_position(
            payload.pointer_y, payload.target_top, payload.target_height
        )

    await registry.drop(payload.dragged_index, payload.target_index, position)
    return _list_response(registry)


@router.get("/{site_id}", response_model=Site)
async def get_site(
    site_id: str,
    registry: SiteRegistry = Depends(get_site_registry),
) -> Site:
    site = registry.get(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return site


@router.patch("/{site_id}", response_model=Site)
async def update_site(
    site_id: str,
    payload: SiteUpdate,
    registry: SiteRegistry = Depends(get_site_registry),
) -> Site:
    updated = await registry.update(site_id, payload.name, payload.url, payload.color)
    if updated is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return updated


@router.delete("/{site_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_site(
    site_id: str,
    session: SidebarSession = Depends(get_sidebar_session),
) -> Response:
    """Remove a site. Unknown ids are accepted silently."""

    await session.remove_site(site_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{site_id}/open", response_model=OpenSiteResponse)
async def open_site(
    site_id: str,
    session: SidebarSession = Depends(get_sidebar_session),
) -> OpenSiteResponse:
    """Make ``site_id`` the active site and load it into the content view."""

    site = await session.open_site(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return OpenSiteResponse(site=site, view_src=session.view.src)
