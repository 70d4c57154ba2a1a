"""Domain models for page comments.

Storage layout (one SharePoint list item per page URL, the "page bucket"):
- ``Comments`` field: JSON array of stored comments (flat, append order)
- ``Likes`` field: JSON array of vote records ``{commentID, userVote}``
- Attachment files on the same item, named ``{commentId}_{originalName}``

Three shapes of a comment exist:
- ``StoredComment``: exactly what is written to the ``Comments`` blob
- ``Comment``: read model with derived vote state and resolved attachments
- ``CommentNode``: display tree node built by the tree assembler
"""

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, ClassVar
from uuid import uuid4


ATTACHMENT_SEPARATOR = "_"


class SortOrder(str, Enum):
    """Display orders offered by the comments widget."""

    NEWEST = "Newest"
    OLDEST = "Oldest"
    POPULAR = "Popular"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Attachment:
    """Image attached to a comment."""

    name: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "url": self.url}


@dataclass
class StoredComment:
    """Comment record as persisted in the ``Comments`` blob."""

    # Fields an edit may shallow-merge into an existing record
    EDITABLE_FIELDS: ClassVar[tuple[str, ...]] = ("content", "modified", "pings")

    id: str
    parent: str | None
    content: str
    created: str
    modified: str
    fullname: str
    userid: int
    upvote_count: int = 0
    user_has_upvoted: bool = False
    pings: dict[str, str] = field(default_factory=dict)
    profile_picture_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoredComment":
        """Create a stored comment from one decoded blob entry.

        Raises:
            ValueError: If the entry has no usable id, a non-numeric user id
                or pings that are not an object.
        """
        comment_id = data.get("id")
        if not comment_id:
            msg = "Comment entry without id"
            raise ValueError(msg)

        pings = data.get("pings") or {}
        if not isinstance(pings, dict):
            msg = f"Comment {comment_id} has non-object pings"
            raise ValueError(msg)

        picture = data.get("profile_picture_url")
        return cls(
            id=str(comment_id),
            parent=str(data["parent"]) if data.get("parent") else None,
            content=_text(data.get("content")),
            created=_text(data.get("created")),
            modified=_text(data.get("modified") or data.get("created")),
            fullname=_text(data.get("fullname")),
            userid=int(data.get("userid") or 0),
            upvote_count=int(data.get("upvote_count") or 0),
            user_has_upvoted=bool(data.get("user_has_upvoted")),
            # Mentions with non-string names are dropped
            pings={str(k): v for k, v in pings.items() if isinstance(v, str)},
            profile_picture_url=str(picture) if picture else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the persisted fields only."""
        return {
            "id": self.id,
            "parent": self.parent,
            "content": self.content,
            "created": self.created,
            "modified": self.modified,
            "fullname": self.fullname,
            "userid": self.userid,
            "upvote_count": self.upvote_count,
            "user_has_upvoted": self.user_has_upvoted,
            "pings": self.pings,
            "profile_picture_url": self.profile_picture_url,
        }


@dataclass
class Comment(StoredComment):
    """Comment as returned to a viewer.

    ``upvote_count`` and ``user_has_upvoted`` are derived from the vote
    records for the requesting viewer; ``attachments`` from the attachment
    listing. ``is_new`` is client-only.
    """

    is_new: bool = False
    attachments: list[Attachment] = field(default_factory=list)

    @classmethod
    def from_stored(
        cls,
        stored: StoredComment,
        attachments: list[Attachment] | None = None,
    ) -> "Comment":
        values = {f.name: getattr(stored, f.name) for f in fields(StoredComment)}
        return cls(**values, attachments=list(attachments or []))

    def to_stored(self) -> StoredComment:
        """Drop the derived and transient fields."""
        return StoredComment(
            **{f.name: getattr(self, f.name) for f in fields(StoredComment)}
        )


@dataclass
class CommentNode:
    """Display-tree node: a comment with its ordered direct replies."""

    comment: Comment
    replies: list["CommentNode"] = field(default_factory=list)


@dataclass
class VoteRecord:
    """Set of users who upvoted one comment."""

    comment_id: str
    voters: set[int] = field(default_factory=set)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VoteRecord":
        """Create a record from a ``{commentID, userVote: [{userid}]}`` entry.

        Raises:
            ValueError: If the entry has no comment id.
        """
        comment_id = data.get("commentID")
        if not comment_id:
            msg = "Vote entry without commentID"
            raise ValueError(msg)

        voters = {
            int(vote["userid"])
            for vote in data.get("userVote") or []
            if isinstance(vote, dict) and vote.get("userid") is not None
        }
        return cls(comment_id=str(comment_id), voters=voters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "commentID": self.comment_id,
            "userVote": [{"userid": user_id} for user_id in sorted(self.voters)],
        }


@dataclass
class Viewer:
    """The SharePoint user making the request."""

    id: int
    display_name: str
    email: str
    profile_picture_url: str
    is_site_admin: bool = False

    @classmethod
    def from_sharepoint(cls, user: dict[str, Any]) -> "Viewer":
        """Create from a ``_api/web/currentuser`` payload."""
        login = user.get("UserPrincipalName") or user.get("Email") or ""
        return cls(
            id=int(user["Id"]),
            display_name=user.get("Title") or "",
            email=user.get("Email") or "",
            profile_picture_url=(
                f"/_layouts/15/userphoto.aspx?size=S&username={login}"
            ),
            is_site_admin=bool(user.get("IsSiteAdmin")),
        )


@dataclass
class PageBucket:
    """The list item holding one page's comments and votes."""

    item_id: int
    page_url: str
    comments: list[StoredComment] = field(default_factory=list)
    votes: list[VoteRecord] = field(default_factory=list)


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    viewer: Viewer,
    content: str,
    parent: str | None = None,
    pings: dict[str, str] | None = None,
) -> Comment:
    """Create a new comment authored by ``viewer``.

    The id is a random UUID; the store never checks id uniqueness.
    """
    now = utc_timestamp()
    return Comment(
        id=str(uuid4()),
        parent=parent,
        content=content,
        created=now,
        modified=now,
        fullname=viewer.display_name,
        userid=viewer.id,
        pings=dict(pings or {}),
        profile_picture_url=viewer.profile_picture_url,
        is_new=True,
    )


def attachment_file_name(comment_id: str, filename: str) -> str:
    """Stored file name linking an attachment to its comment."""
    basename = PurePosixPath(filename.replace("\\", "/")).name
    return f"{comment_id}{ATTACHMENT_SEPARATOR}{basename}"
