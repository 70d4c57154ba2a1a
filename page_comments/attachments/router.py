"""Router for comment attachment uploads."""

from typing import Annotated

import structlog
from fastapi import APIRouter, File, Query, UploadFile, status

from page_comments.auth.dependencies import CurrentViewer
from page_comments.comments.dependencies import handle_comment_error
from page_comments.comments.service import CommentError

from .dependencies import AttachmentServiceDep
from .schemas import AttachmentErrorResponse, AttachmentUploadResponse


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/comments", tags=["attachments"])


@router.post(
    "/{comment_id}/attachments",
    response_model=AttachmentUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": AttachmentErrorResponse, "description": "Invalid image"},
        404: {"model": AttachmentErrorResponse, "description": "Page has no comments"},
        413: {"model": AttachmentErrorResponse, "description": "File too large"},
    },
    summary="Attach image to comment",
)
async def upload_attachment(
    comment_id: str,
    attachments: AttachmentServiceDep,
    viewer: CurrentViewer,
    file: Annotated[UploadFile, File(description="Image file to attach")],
    page_url: Annotated[str, Query(min_length=1)],
) -> AttachmentUploadResponse:
    """Upload an image and link it to a comment by file name."""
    logger.info(
        "attachment_upload_request",
        comment_id=comment_id,
        filename=file.filename,
        content_type=file.content_type,
    )

    content = await file.read()
    content_type = file.content_type or "application/octet-stream"

    try:
        attachment = await attachments.upload(
            page_url=page_url,
            comment_id=comment_id,
            filename=file.filename,
            content=content,
            content_type=content_type,
        )
    except CommentError as e:
        logger.warning("attachment_upload_rejected", code=e.code, error=e.message)
        raise handle_comment_error(e) from e

    return AttachmentUploadResponse(
        comment_id=comment_id,
        name=attachment.name,
        url=attachment.url,
        content_type=content_type,
        file_size=len(content),
    )
