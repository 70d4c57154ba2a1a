"""Viewer endpoints."""

from fastapi import APIRouter

from .dependencies import CurrentViewer, IsAdmin
from .schemas import ViewerResponse


router = APIRouter(prefix="/v1/viewer", tags=["viewer"])


@router.get("", response_model=ViewerResponse, summary="Get current viewer")
async def get_viewer(viewer: CurrentViewer, is_admin: IsAdmin) -> ViewerResponse:
    """Get the current SharePoint user and whether they administer comments."""
    return ViewerResponse.from_viewer(viewer, is_admin)
