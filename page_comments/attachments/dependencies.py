"""Dependencies for attachments module."""

from typing import Annotated

from fastapi import Depends

from page_comments.comments.dependencies import BucketStoreDep
from page_comments.config.settings import Settings, get_settings

from .service import AttachmentService


def get_attachment_service(
    store: BucketStoreDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> AttachmentService:
    """Get the attachment service for this request."""
    return AttachmentService(store=store, settings=settings)


# Type alias for dependency injection
AttachmentServiceDep = Annotated[AttachmentService, Depends(get_attachment_service)]
