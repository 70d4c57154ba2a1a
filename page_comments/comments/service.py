"""Comment system service layer.

Business logic for:
- Reading a page's comments with vote state and attachments merged in
- Posting, editing and deleting comments (whole-blob read-modify-write)
- Toggling upvotes

Every mutation reads the full page bucket, changes it in memory and writes the
whole field back. Concurrent writers are not detected: the last write wins.
"""

from typing import Any

import structlog

from .models import (
    Comment,
    CommentNode,
    SortOrder,
    StoredComment,
    Viewer,
    VoteRecord,
)
from .store import PageBucketStore, match_attachments
from .tree import assemble_tree, collect_subtree_ids
from .votes import reconcile_votes, toggle_vote


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class BucketNotFoundError(CommentError):
    """The page has no comments item yet."""

    def __init__(self, message: str = "No comments item found"):
        super().__init__(message, "bucket_not_found")


class PermissionDeniedError(CommentError):
    """Permission denied for operation."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


def can_modify(comment: StoredComment, viewer: Viewer, is_admin: bool) -> bool:
    """Authors and comment administrators may edit or delete a comment."""
    return is_admin or comment.userid == viewer.id


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for page comment management."""

    def __init__(self, store: PageBucketStore):
        self.store = store

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def fetch_comments(self, page_url: str, viewer: Viewer) -> list[Comment]:
        """Get the flat comment list of a page as seen by ``viewer``.

        Returns an empty list when the page has no bucket.
        """
        bucket = await self.store.load(page_url)
        if bucket is None:
            return []

        attachments: dict[str, list] = {}
        if bucket.comments:
            files = await self.store.list_attachments(bucket)
            attachments = match_attachments((c.id for c in bucket.comments), files)

        comments = [
            Comment.from_stored(stored, attachments.get(stored.id))
            for stored in bucket.comments
        ]
        return reconcile_votes(comments, bucket.votes, viewer.id)

    async def fetch_thread(
        self,
        page_url: str,
        viewer: Viewer,
        order: SortOrder = SortOrder.NEWEST,
    ) -> list[CommentNode]:
        """Get a page's comments nested into reply trees."""
        comments = await self.fetch_comments(page_url, viewer)
        return assemble_tree(comments, order)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def post(self, page_url: str, comment: StoredComment) -> None:
        """Append a comment to the page, creating the bucket on first post.

        Id uniqueness is the caller's responsibility.
        """
        bucket = await self.store.load(page_url)
        comments = list(bucket.comments) if bucket else []

        stored = comment.to_stored() if isinstance(comment, Comment) else comment
        comments.append(stored)

        await self.store.save_comments(page_url, comments, bucket)
        logger.info(
            "comment_posted",
            comment_id=stored.id,
            parent_id=stored.parent,
            total=len(comments),
        )

    async def edit(
        self,
        page_url: str,
        comment_id: str,
        changes: dict[str, Any],
        viewer: Viewer | None = None,
        is_admin: bool = False,
    ) -> StoredComment | None:
        """Shallow-merge ``changes`` into an existing comment.

        Only ``StoredComment.EDITABLE_FIELDS`` are merged. Returns None without
        writing when the comment does not exist. When ``viewer`` is given the
        viewer must be the author or an admin.

        Raises:
            PermissionDeniedError: If ``viewer`` may not modify the comment.
        """
        bucket = await self.store.load(page_url)
        if bucket is None:
            return None

        index = next(
            (i for i, c in enumerate(bucket.comments) if c.id == comment_id), None
        )
        if index is None:
            logger.info("comment_edit_skipped", comment_id=comment_id)
            return None

        existing = bucket.comments[index]
        if viewer is not None and not can_modify(existing, viewer, is_admin):
            raise PermissionDeniedError("You can only edit your own comments")

        updates = {
            key: value
            for key, value in changes.items()
            if key in StoredComment.EDITABLE_FIELDS
        }
        ignored = sorted(set(changes) - set(updates))
        if ignored:
            logger.warning(
                "comment_edit_fields_ignored", comment_id=comment_id, fields=ignored
            )
        updated = StoredComment(**{**existing.to_dict(), **updates})

        comments = list(bucket.comments)
        comments[index] = updated
        await self.store.save_comments(page_url, comments, bucket)

        logger.info("comment_edited", comment_id=comment_id, fields=sorted(updates))
        return updated

    async def delete(
        self,
        page_url: str,
        comment_id: str,
        viewer: Viewer | None = None,
        is_admin: bool = False,
    ) -> set[str]:
        """Remove a comment and all of its replies in one write.

        Returns the removed ids; empty (and nothing written) when the comment
        does not exist.

        Raises:
            PermissionDeniedError: If ``viewer`` may not modify the comment.
        """
        bucket = await self.store.load(page_url)
        if bucket is None:
            return set()

        target = next((c for c in bucket.comments if c.id == comment_id), None)
        if target is None:
            logger.info("comment_delete_skipped", comment_id=comment_id)
            return set()

        if viewer is not None and not can_modify(target, viewer, is_admin):
            raise PermissionDeniedError("You can only delete your own comments")

        removed = collect_subtree_ids(bucket.comments, comment_id)
        remaining = [c for c in bucket.comments if c.id not in removed]
        await self.store.save_comments(page_url, remaining, bucket)

        logger.info("comment_deleted", comment_id=comment_id, removed=len(removed))
        return removed

    async def vote(
        self,
        page_url: str,
        comment_id: str,
        upvoted: bool,
        viewer: Viewer,
    ) -> VoteRecord:
        """Set the viewer's upvote on a comment to ``upvoted``.

        Returns the comment's resulting vote record (empty when no votes).

        Raises:
            BucketNotFoundError: If the page has no bucket yet.
        """
        bucket = await self.store.load(page_url)
        if bucket is None:
            raise BucketNotFoundError

        # Records left behind by deleted comments are pruned on this write
        known = {c.id for c in bucket.comments} | {comment_id}
        current = [r for r in bucket.votes if r.comment_id in known]
        if len(current) < len(bucket.votes):
            logger.info(
                "stale_votes_pruned", removed=len(bucket.votes) - len(current)
            )

        votes = toggle_vote(current, comment_id, viewer.id, upvoted)
        await self.store.save_votes(bucket, votes)

        record = next(
            (r for r in votes if r.comment_id == comment_id),
            VoteRecord(comment_id=comment_id),
        )
        logger.info(
            "comment_voted",
            comment_id=comment_id,
            upvoted=upvoted,
            upvote_count=len(record.voters),
        )
        return record
