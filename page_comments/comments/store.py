"""Page bucket persistence on a SharePoint list.

One list item per page URL holds two JSON text fields (``Comments`` and
``Likes``) and the attachment files of the page's comments. Every write
replaces a whole field: there is no partial update and no version check.
"""

import json
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote, urljoin

import structlog

from page_comments.sharepoint.client import SharePointClient, odata_literal

from .models import (
    ATTACHMENT_SEPARATOR,
    Attachment,
    PageBucket,
    StoredComment,
    VoteRecord,
    attachment_file_name,
)


logger = structlog.get_logger(__name__)

PAGE_URL_FIELD = "PageURL"
COMMENTS_FIELD = "Comments"
LIKES_FIELD = "Likes"
TEXT_VALUES = "FieldValuesAsText"


# ==============================================================================
# Blob Serialization
# ==============================================================================


def _decode_blob(raw: str | None, field_name: str) -> list[dict[str, Any]]:
    """Decode a JSON array field; anything unreadable counts as empty."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("blob_malformed", field=field_name, error=str(e))
        return []
    if not isinstance(data, list):
        logger.warning(
            "blob_malformed", field=field_name, error="expected a JSON array"
        )
        return []
    return [entry for entry in data if isinstance(entry, dict)]


def parse_comments(raw: str | None) -> list[StoredComment]:
    """Deserialize the ``Comments`` field, skipping unusable entries."""
    comments = []
    for entry in _decode_blob(raw, COMMENTS_FIELD):
        try:
            comments.append(StoredComment.from_dict(entry))
        except (TypeError, ValueError) as e:
            logger.warning("comment_entry_skipped", error=str(e))
    return comments


def parse_votes(raw: str | None) -> list[VoteRecord]:
    """Deserialize the ``Likes`` field, skipping unusable entries."""
    votes = []
    for entry in _decode_blob(raw, LIKES_FIELD):
        try:
            votes.append(VoteRecord.from_dict(entry))
        except (TypeError, ValueError) as e:
            logger.warning("vote_entry_skipped", error=str(e))
    return votes


def serialize_comments(comments: Iterable[StoredComment]) -> str:
    return json.dumps([comment.to_dict() for comment in comments])


def serialize_votes(votes: Iterable[VoteRecord]) -> str:
    return json.dumps([record.to_dict() for record in votes])


def match_attachments(
    comment_ids: Iterable[str],
    files: Iterable[Attachment],
) -> dict[str, list[Attachment]]:
    """Group stored attachment files by owning comment.

    A file belongs to a comment when its name starts with
    ``{comment_id}_``. When several ids match the same file the longest id
    wins. Files matching no comment are left out. The returned attachments
    carry the original name (prefix removed); listing order is kept.
    """
    ids = sorted(set(comment_ids), key=len, reverse=True)
    matched: dict[str, list[Attachment]] = {}

    for file in files:
        for comment_id in ids:
            prefix = f"{comment_id}{ATTACHMENT_SEPARATOR}"
            if file.name.startswith(prefix) and len(file.name) > len(prefix):
                matched.setdefault(comment_id, []).append(
                    Attachment(name=file.name[len(prefix) :], url=file.url)
                )
                break

    return matched


def _page_title(page_url: str) -> str:
    return page_url.rstrip("/").split("/")[-1] or page_url


# ==============================================================================
# Page Bucket Store
# ==============================================================================


class PageBucketStore:
    """Reads and writes page buckets through the SharePoint REST API."""

    def __init__(self, client: SharePointClient, site_url: str) -> None:
        self.client = client
        self.site_url = site_url

    def _field_text(self, item: dict[str, Any], field_name: str) -> str | None:
        text_values = item.get(TEXT_VALUES) or {}
        return text_values.get(field_name) or item.get(field_name)

    async def load(self, page_url: str) -> PageBucket | None:
        """Load the bucket for ``page_url``, or None when the page has none.

        Buckets are unique per page only by convention; if a race created
        duplicates, the first one returned is used.
        """
        items = await self.client.get_items(
            filter=f"{PAGE_URL_FIELD} eq {odata_literal(page_url)}",
            select=[
                "ID",
                COMMENTS_FIELD,
                LIKES_FIELD,
                f"{TEXT_VALUES}/{COMMENTS_FIELD}",
                f"{TEXT_VALUES}/{LIKES_FIELD}",
            ],
            expand=[TEXT_VALUES],
        )
        if not items:
            return None

        if len(items) > 1:
            logger.warning("duplicate_page_buckets", count=len(items))

        item = items[0]
        return PageBucket(
            item_id=int(item["ID"]),
            page_url=page_url,
            comments=parse_comments(self._field_text(item, COMMENTS_FIELD)),
            votes=parse_votes(self._field_text(item, LIKES_FIELD)),
        )

    async def save_comments(
        self,
        page_url: str,
        comments: list[StoredComment],
        bucket: PageBucket | None,
    ) -> PageBucket:
        """Write the whole comment collection, creating the bucket if needed."""
        blob = serialize_comments(comments)

        if bucket is not None:
            await self.client.update_item(bucket.item_id, {COMMENTS_FIELD: blob})
            bucket.comments = list(comments)
            return bucket

        item = await self.client.add_item(
            {
                "Title": _page_title(page_url),
                PAGE_URL_FIELD: page_url,
                COMMENTS_FIELD: blob,
            }
        )
        logger.info("page_bucket_created", item_id=item.get("ID"))
        return PageBucket(
            item_id=int(item.get("ID") or item.get("Id")),
            page_url=page_url,
            comments=list(comments),
        )

    async def save_votes(self, bucket: PageBucket, votes: list[VoteRecord]) -> None:
        """Write the whole vote-record collection of an existing bucket."""
        await self.client.update_item(
            bucket.item_id, {LIKES_FIELD: serialize_votes(votes)}
        )
        bucket.votes = list(votes)

    def _absolute_url(self, server_relative_url: str) -> str:
        return urljoin(self.site_url, quote(server_relative_url))

    async def list_attachments(self, bucket: PageBucket) -> list[Attachment]:
        """List every file stored on the bucket item (names keep their prefix)."""
        files = await self.client.get_attachments(bucket.item_id)
        return [
            Attachment(
                name=file["FileName"],
                url=self._absolute_url(file.get("ServerRelativeUrl") or ""),
            )
            for file in files
            if file.get("FileName")
        ]

    async def add_attachment(
        self,
        bucket: PageBucket,
        comment_id: str,
        filename: str,
        content: bytes,
    ) -> Attachment:
        """Store ``content`` on the bucket item under the comment's prefix."""
        stored_name = attachment_file_name(comment_id, filename)
        file = await self.client.add_attachment(bucket.item_id, stored_name, content)
        return Attachment(
            name=stored_name[len(comment_id) + len(ATTACHMENT_SEPARATOR) :],
            url=self._absolute_url(file.get("ServerRelativeUrl") or ""),
        )
