"""Attachments module for comment images.

Images are stored as files on the page's comments item and linked to a
comment by the ``{commentId}_{originalName}`` file name.
"""

from page_comments.attachments.router import router
from page_comments.attachments.schemas import AttachmentUploadResponse
from page_comments.attachments.service import (
    AttachmentService,
    AttachmentTooLargeError,
    AttachmentValidationError,
)


__all__ = [
    "AttachmentService",
    "AttachmentTooLargeError",
    "AttachmentUploadResponse",
    "AttachmentValidationError",
    "router",
]
