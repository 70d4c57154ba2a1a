"""Comment system API endpoints.

Provides routes for:
- Listing a page's comments (flat or threaded)
- Posting comments and replies
- Editing and deleting (author or comment administrator)
- Upvoting
"""

from fastapi import APIRouter, HTTPException, Query, status

from page_comments.auth.dependencies import CurrentViewer, IsAdmin

from .dependencies import CommentServiceDep, handle_comment_error
from .models import SortOrder, create_comment, utc_timestamp
from .schemas import (
    CommentListResponse,
    CommentResponse,
    CommentThreadResponse,
    CommentWithRepliesResponse,
    CreateCommentRequest,
    UpdateCommentRequest,
    VoteRequest,
    VoteResponse,
)
from .service import CommentError
from .tree import flatten_tree


router = APIRouter(prefix="/v1/comments", tags=["comments"])

PageUrl = Query(..., min_length=1, description="URL of the page the comments belong to")


def _comment_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Comment not found",
    )


@router.get(
    "",
    response_model=CommentListResponse,
    summary="List page comments",
)
async def list_comments(
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    page_url: str = PageUrl,
) -> CommentListResponse:
    """Get a page's comments as a flat list in stored order.

    Vote counts and the viewer's vote flag are merged in; replies are not
    nested. Pages without comments return an empty list.
    """
    comments = await comment_service.fetch_comments(page_url, viewer)
    return CommentListResponse.from_comments(comments)


@router.get(
    "/thread",
    response_model=CommentThreadResponse,
    summary="List page comments as reply trees",
)
async def list_comment_thread(
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    page_url: str = PageUrl,
    sort: SortOrder = Query(default=SortOrder.NEWEST),
    replies_limit: int | None = Query(
        default=None, ge=0, description="Replies shown per comment (all if omitted)"
    ),
) -> CommentThreadResponse:
    """Get a page's comments nested under their parents.

    Sorting applies before nesting, so replies follow the same order as
    top-level comments.
    """
    nodes = await comment_service.fetch_thread(page_url, viewer, sort)
    return CommentThreadResponse(
        items=[CommentWithRepliesResponse.from_node(n, replies_limit) for n in nodes],
        total=len(flatten_tree(nodes)),
    )


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post comment",
)
async def post_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    page_url: str = PageUrl,
) -> CommentResponse:
    """Post a comment, or a reply when ``parent`` is set.

    The first comment on a page creates its storage item.
    """
    comment = create_comment(
        viewer=viewer,
        content=data.content,
        parent=data.parent,
        pings=data.pings,
    )
    await comment_service.post(page_url, comment)
    return CommentResponse.from_comment(comment)


@router.patch(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def edit_comment(
    comment_id: str,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    is_admin: IsAdmin,
    page_url: str = PageUrl,
) -> CommentResponse:
    """Edit a comment's content or pings.

    Only the author or a comment administrator may edit.
    """
    changes = data.model_dump(exclude_none=True)
    changes["modified"] = utc_timestamp()

    try:
        updated = await comment_service.edit(
            page_url, comment_id, changes, viewer=viewer, is_admin=is_admin
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    if updated is None:
        raise _comment_not_found()

    comments = await comment_service.fetch_comments(page_url, viewer)
    current = next((c for c in comments if c.id == comment_id), updated)
    return CommentResponse.from_comment(current)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: str,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    is_admin: IsAdmin,
    page_url: str = PageUrl,
) -> None:
    """Delete a comment together with all of its replies.

    Only the author or a comment administrator may delete.
    """
    try:
        removed = await comment_service.delete(
            page_url, comment_id, viewer=viewer, is_admin=is_admin
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    if not removed:
        raise _comment_not_found()


@router.post(
    "/{comment_id}/vote",
    response_model=VoteResponse,
    summary="Set upvote",
)
async def vote_comment(
    comment_id: str,
    data: VoteRequest,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    page_url: str = PageUrl,
) -> VoteResponse:
    """Set or clear the viewer's upvote on a comment.

    Sending the same state twice leaves the vote unchanged.
    """
    try:
        record = await comment_service.vote(page_url, comment_id, data.upvoted, viewer)
    except CommentError as e:
        raise handle_comment_error(e) from e

    return VoteResponse.from_record(record, viewer.id)
