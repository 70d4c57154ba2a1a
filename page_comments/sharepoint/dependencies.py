"""FastAPI dependencies for the SharePoint client."""

from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, Request, status

from page_comments.config.settings import Settings, get_settings
from page_comments.sharepoint.client import SharePointClient


def get_access_token(request: Request) -> str:
    """Extract the caller's SharePoint bearer token.

    The token is forwarded as-is; SharePoint is the only party validating it.

    Raises:
        HTTPException(401): If the Authorization header is missing or malformed.
    """
    auth_header = request.headers.get("Authorization", "")
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":  # noqa: PLR2004
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="SharePoint access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return parts[1]


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get the shared HTTP client created in the app lifespan."""
    http_client = getattr(request.app.state, "http_client", None)
    if http_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SharePoint client not available",
        )
    return http_client


def get_sharepoint_client(
    http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    access_token: Annotated[str, Depends(get_access_token)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SharePointClient:
    """Build a client bound to the caller's token for this request."""
    return SharePointClient(
        http=http_client,
        api_url=settings.sharepoint_api_url,
        list_title=settings.sharepoint_list_title,
        access_token=access_token,
    )


SharePointClientDep = Annotated[SharePointClient, Depends(get_sharepoint_client)]
