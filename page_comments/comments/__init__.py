"""Comment system module.

Provides a page comments backend on top of a SharePoint list with:
- Threaded comments (parent/child) stored as one JSON blob per page
- Upvotes stored as a separate JSON blob per page
- Sorted reply trees (Newest, Oldest, Popular)

Note: Router is not exported here to avoid circular imports.
Import directly from page_comments.comments.router when needed.
"""

from .models import (
    Comment,
    CommentNode,
    PageBucket,
    SortOrder,
    StoredComment,
    Viewer,
    VoteRecord,
)
from .service import (
    BucketNotFoundError,
    CommentError,
    CommentService,
    PermissionDeniedError,
)


__all__ = [
    "BucketNotFoundError",
    "Comment",
    "CommentError",
    "CommentNode",
    "CommentService",
    "PageBucket",
    "PermissionDeniedError",
    "SortOrder",
    "StoredComment",
    "Viewer",
    "VoteRecord",
]
