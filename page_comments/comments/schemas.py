"""Pydantic schemas for the comment API.

Request/Response models with validation for:
- Comment create/edit
- Votes
- Flat and threaded comment listings
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Comment, CommentNode, VoteRecord


# ==============================================================================
# Request Schemas
# ==============================================================================


def _strip_content(v: str) -> str:
    v = v.strip()
    if not v:
        msg = "Content cannot be empty"
        raise ValueError(msg)
    return v


class CreateCommentRequest(BaseModel):
    """Request to post a comment or a reply."""

    content: str = Field(..., min_length=1, max_length=10000)
    parent: str | None = Field(None, description="Id of the comment replied to")
    pings: dict[str, str] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Strip whitespace and validate content."""
        return _strip_content(v)


class UpdateCommentRequest(BaseModel):
    """Request to edit a comment."""

    content: str | None = Field(None, min_length=1, max_length=10000)
    pings: dict[str, str] | None = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str | None) -> str | None:
        """Strip whitespace and validate content."""
        return _strip_content(v) if v is not None else v


class VoteRequest(BaseModel):
    """The viewer's desired upvote state for a comment."""

    upvoted: bool


# ==============================================================================
# Response Schemas
# ==============================================================================


class AttachmentResponse(BaseModel):
    """Attachment of a comment."""

    name: str
    url: str


class CommentResponse(BaseModel):
    """Response for a single comment."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    parent: str | None = None
    content: str
    created: str
    modified: str
    fullname: str
    userid: int
    profile_picture_url: str | None = None
    upvote_count: int = 0
    user_has_upvoted: bool = False
    is_new: bool = False
    pings: dict[str, str] = Field(default_factory=dict)
    attachments: list[AttachmentResponse] = Field(default_factory=list)

    @classmethod
    def from_comment(cls, comment: Any) -> "CommentResponse":
        """Create response from a Comment or StoredComment entity."""
        return cls(
            id=comment.id,
            parent=comment.parent,
            content=comment.content,
            created=comment.created,
            modified=comment.modified,
            fullname=comment.fullname,
            userid=comment.userid,
            profile_picture_url=comment.profile_picture_url,
            upvote_count=comment.upvote_count,
            user_has_upvoted=comment.user_has_upvoted,
            is_new=getattr(comment, "is_new", False),
            pings=comment.pings,
            attachments=[
                AttachmentResponse(name=a.name, url=a.url)
                for a in getattr(comment, "attachments", [])
            ],
        )


class CommentWithRepliesResponse(CommentResponse):
    """Comment with nested replies.

    ``reply_count`` is the number of direct replies even when ``replies`` is
    cut to a preview.
    """

    reply_count: int = 0
    replies: list["CommentWithRepliesResponse"] = Field(default_factory=list)

    @classmethod
    def from_node(
        cls, node: CommentNode, replies_limit: int | None = None
    ) -> "CommentWithRepliesResponse":
        replies = node.replies
        if replies_limit is not None:
            replies = replies[:replies_limit]
        return cls(
            **CommentResponse.from_comment(node.comment).model_dump(),
            reply_count=len(node.replies),
            replies=[cls.from_node(reply, replies_limit) for reply in replies],
        )


class CommentListResponse(BaseModel):
    """Flat list of a page's comments."""

    items: list[CommentResponse]
    total: int

    @classmethod
    def from_comments(cls, comments: list[Comment]) -> "CommentListResponse":
        return cls(
            items=[CommentResponse.from_comment(c) for c in comments],
            total=len(comments),
        )


class CommentThreadResponse(BaseModel):
    """A page's comments nested into reply trees."""

    items: list[CommentWithRepliesResponse]
    total: int = Field(..., description="Number of comments in all trees")


class VoteResponse(BaseModel):
    """Vote state of a comment after a vote."""

    comment_id: str
    upvote_count: int
    user_has_upvoted: bool

    @classmethod
    def from_record(cls, record: VoteRecord, viewer_id: int) -> "VoteResponse":
        return cls(
            comment_id=record.comment_id,
            upvote_count=len(record.voters),
            user_has_upvoted=viewer_id in record.voters,
        )
