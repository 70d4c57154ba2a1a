"""FastAPI dependencies for the comment system.

Provides dependency injection for:
- Page bucket store and comment service bound to the caller's token
- Error mapping from service errors to HTTP errors
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from page_comments.config.settings import Settings, get_settings
from page_comments.sharepoint.dependencies import SharePointClientDep

from .service import CommentError, CommentService
from .store import PageBucketStore


def get_bucket_store(
    client: SharePointClientDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> PageBucketStore:
    """Get the page bucket store for this request."""
    return PageBucketStore(client=client, site_url=settings.sharepoint_site_url)


BucketStoreDep = Annotated[PageBucketStore, Depends(get_bucket_store)]


def get_comment_service(store: BucketStoreDep) -> CommentService:
    """Get the comment service for this request."""
    return CommentService(store)


CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]


def handle_comment_error(error: CommentError) -> HTTPException:
    """Convert comment errors to HTTP exceptions.

    Args:
        error: Comment error

    Returns:
        HTTPException with appropriate status code
    """
    status_map = {
        "bucket_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "invalid_attachment": status.HTTP_400_BAD_REQUEST,
        "attachment_too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
