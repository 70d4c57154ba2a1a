"""FastAPI dependencies for viewer identity.

Provides dependency injection for:
- Viewer service bound to the caller's SharePoint token
- Current viewer (sets user_id in the logging context)
- Admin flag of the current viewer
"""

from typing import Annotated

from fastapi import Depends, Request

from page_comments.comments.models import Viewer
from page_comments.config.settings import Settings, get_settings
from page_comments.core.context import set_user_id
from page_comments.sharepoint.dependencies import SharePointClientDep

from .service import ViewerService


def get_viewer_service(
    request: Request,
    client: SharePointClientDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ViewerService:
    """Build the viewer service for this request."""
    return ViewerService(
        client=client,
        admin_group=settings.sharepoint_admin_group,
        redis=getattr(request.app.state, "redis", None),
        cache_ttl=settings.admin_cache_ttl_seconds,
        site_url=settings.sharepoint_site_url,
    )


ViewerServiceDep = Annotated[ViewerService, Depends(get_viewer_service)]


async def get_current_viewer(viewer_service: ViewerServiceDep) -> Viewer:
    """Get the SharePoint user behind the forwarded token.

    SharePoint failures propagate (401/403 from SharePoint reach the caller).
    """
    viewer = await viewer_service.get_current_viewer()
    set_user_id(viewer.id)
    return viewer


CurrentViewer = Annotated[Viewer, Depends(get_current_viewer)]


async def get_is_admin(viewer: CurrentViewer, viewer_service: ViewerServiceDep) -> bool:
    """Whether the current viewer administers comments (never raises)."""
    return await viewer_service.is_admin(viewer)


IsAdmin = Annotated[bool, Depends(get_is_admin)]
