"""Schemas for attachment uploads."""

from pydantic import BaseModel, Field


class AttachmentUploadResponse(BaseModel):
    """Result of attaching a file to a comment."""

    comment_id: str
    name: str = Field(..., description="Original file name")
    url: str = Field(..., description="Absolute URL of the stored file")
    content_type: str
    file_size: int


class AttachmentErrorResponse(BaseModel):
    """Error body documented for upload failures."""

    error: bool = True
    message: str
    status_code: int
    request_id: str | None = None
