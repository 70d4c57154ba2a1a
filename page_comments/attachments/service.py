"""Comment attachment uploads.

Handles image uploads for comments with:
- Size and Content-Type limits from settings
- Magic bytes validation of the actual content
- Storage on the page bucket item under the ``{commentId}_{name}`` convention
"""

import structlog

from page_comments.comments.models import Attachment
from page_comments.comments.service import BucketNotFoundError, CommentError
from page_comments.comments.store import PageBucketStore
from page_comments.config.settings import Settings
from page_comments.utils.magic_bytes import validate_content_type


logger = structlog.get_logger(__name__)


class AttachmentValidationError(CommentError):
    """Uploaded file is not an acceptable image."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "invalid_attachment")


class AttachmentTooLargeError(CommentError):
    """Uploaded file exceeds the size limit."""

    def __init__(self, size: int, max_size: int) -> None:
        message = (
            f"File size ({size / 1024 / 1024:.2f} MB) exceeds "
            f"maximum allowed ({max_size / 1024 / 1024:.2f} MB)"
        )
        super().__init__(message, "attachment_too_large")


class AttachmentService:
    """Service for attaching images to page comments."""

    def __init__(self, store: PageBucketStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    @property
    def max_file_size(self) -> int:
        """Maximum file size in bytes."""
        return self.settings.upload_max_file_size_mb * 1024 * 1024

    @property
    def allowed_types(self) -> list[str]:
        return self.settings.upload_allowed_image_types

    def validate(self, filename: str | None, content: bytes, content_type: str) -> str:
        """Check an upload and return its detected MIME type.

        Raises:
            AttachmentTooLargeError: If the file exceeds the size limit.
            AttachmentValidationError: If the name, type or content is invalid.
        """
        if not filename or not filename.strip():
            raise AttachmentValidationError("File name is required")

        if not content:
            raise AttachmentValidationError("File is empty")

        file_size = len(content)
        if file_size > self.max_file_size:
            raise AttachmentTooLargeError(file_size, self.max_file_size)

        if content_type not in self.allowed_types:
            raise AttachmentValidationError(
                f"Content type '{content_type}' is not allowed. "
                f"Allowed: {', '.join(self.allowed_types)}"
            )

        is_valid, detected_type, error_msg = validate_content_type(
            content,
            content_type,
            allowed_types=frozenset(self.allowed_types),
        )
        if not is_valid:
            logger.warning(
                "magic_bytes_validation_failed",
                declared_type=content_type,
                detected_type=detected_type,
                error=error_msg,
            )
            raise AttachmentValidationError(error_msg or "Invalid file content")

        return detected_type or content_type

    async def upload(
        self,
        page_url: str,
        comment_id: str,
        filename: str | None,
        content: bytes,
        content_type: str,
    ) -> Attachment:
        """Attach an image to a comment on ``page_url``.

        The page must already have a bucket (a comment exists before its
        attachments). The comment id is not checked: the link is the file name.

        Raises:
            BucketNotFoundError: If the page has no bucket yet.
            AttachmentTooLargeError: If the file exceeds the size limit.
            AttachmentValidationError: If the file is not an acceptable image.
        """
        detected_type = self.validate(filename, content, content_type)

        bucket = await self.store.load(page_url)
        if bucket is None:
            raise BucketNotFoundError

        attachment = await self.store.add_attachment(
            bucket, comment_id, filename or "", content
        )
        logger.info(
            "attachment_uploaded",
            comment_id=comment_id,
            attachment_name=attachment.name,
            content_type=detected_type,
            file_size=len(content),
        )
        return attachment
