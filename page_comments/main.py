"""Page Comments API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from page_comments.attachments.router import router as attachments_router
from page_comments.auth.router import router as viewer_router
from page_comments.comments.router import router as comments_router
from page_comments.config import get_settings
from page_comments.core.context import get_request_id
from page_comments.core.logging import configure_structlog, get_logger
from page_comments.core.middleware import RequestContextMiddleware
from page_comments.core.redis import init_redis, shutdown_redis
from page_comments.health.router import router as health_router
from page_comments.sharepoint.client import (
    SharePointConnectionError,
    SharePointResponseError,
)


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)

# SharePoint statuses passed through to the caller; others become 502
PASSTHROUGH_STATUSES = frozenset({401, 403, 404})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        sharepoint_site=settings.sharepoint_site_url,
    )

    # Shared connection pool; each request binds its own caller token
    app.state.http_client = httpx.AsyncClient(timeout=settings.sharepoint_timeout)
    logger.info("sharepoint_http_client_initialized")

    # Initialize Redis (non-critical - admin checks just skip the cache)
    app.state.redis = None
    try:
        app.state.redis = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - admin lookups are not cached",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await app.state.http_client.aclose()
    await shutdown_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # SECURITY: Always set debug=False to prevent Starlette's ServerErrorMiddleware
    # from exposing stack traces in responses.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Page comments for SharePoint sites - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _error_response(
        request: Request, status_code: int, message: str
    ) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": message,
                "status_code": status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    # Global exception handlers (security: never expose stack traces)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        response = _error_response(
            request,
            exc.status_code,
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error",
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(SharePointResponseError)
    async def sharepoint_response_handler(
        request: Request, exc: SharePointResponseError
    ) -> ORJSONResponse:
        """Relay SharePoint auth/not-found errors, hide everything else as 502."""
        logger.warning(
            "sharepoint_response_error",
            sharepoint_status=exc.status_code,
            error=exc.message,
            path=request.url.path,
            method=request.method,
        )

        if exc.status_code in PASSTHROUGH_STATUSES:
            return _error_response(request, exc.status_code, exc.message)
        return _error_response(
            request, status.HTTP_502_BAD_GATEWAY, "SharePoint request failed"
        )

    @app.exception_handler(SharePointConnectionError)
    async def sharepoint_connection_handler(
        request: Request, exc: SharePointConnectionError
    ) -> ORJSONResponse:
        """SharePoint unreachable or timed out."""
        logger.error(
            "sharepoint_unreachable",
            error=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request, status.HTTP_502_BAD_GATEWAY, "SharePoint is unreachable"
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        SECURITY: Never expose stack traces or internal error details to users.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(viewer_router)
    app.include_router(comments_router)
    app.include_router(attachments_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Page Comments API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
