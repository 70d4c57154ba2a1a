"""Health check endpoints."""

from fastapi import APIRouter, Request

from page_comments.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - the SharePoint HTTP client must exist.

    Redis is optional, so it is reported but never blocks readiness.
    """
    settings = get_settings()
    http_client = getattr(request.app.state, "http_client", None)
    return {
        "status": "ready" if http_client is not None else "starting",
        "environment": settings.environment,
        "debug": settings.debug,
        "sharepoint_site": settings.sharepoint_site_url,
        "admin_cache": getattr(request.app.state, "redis", None) is not None,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
