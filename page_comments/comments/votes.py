"""Vote reconciliation.

Vote records live in their own blob, separate from the comments. These pure
functions merge them into comments for a given viewer and apply a viewer's
toggle to the record collection.
"""

from collections.abc import Iterable
from dataclasses import replace

from .models import Comment, VoteRecord


def reconcile_votes(
    comments: Iterable[Comment],
    votes: Iterable[VoteRecord],
    viewer_id: int,
) -> list[Comment]:
    """Apply vote records to comments for one viewer.

    Comments with a matching record get ``upvote_count = len(voters)`` and
    ``user_has_upvoted = viewer_id in voters``. Comments without a record keep
    their stored values. Input objects are not modified.
    """
    by_comment = {record.comment_id: record for record in votes}

    merged = []
    for comment in comments:
        record = by_comment.get(comment.id)
        if record is None:
            merged.append(replace(comment))
            continue
        merged.append(
            replace(
                comment,
                upvote_count=len(record.voters),
                user_has_upvoted=viewer_id in record.voters,
            )
        )
    return merged


def toggle_vote(
    votes: Iterable[VoteRecord],
    comment_id: str,
    voter_id: int,
    upvoted: bool,
) -> list[VoteRecord]:
    """Return the vote records with ``voter_id`` added or removed.

    ``upvoted`` is the state the viewer wants (already flipped by the client).
    A record is only created when adding a vote. Applying the same state twice
    changes nothing.
    """
    records = [VoteRecord(r.comment_id, set(r.voters)) for r in votes]

    record = next((r for r in records if r.comment_id == comment_id), None)
    if record is None:
        if not upvoted:
            return records
        record = VoteRecord(comment_id=comment_id)
        records.append(record)

    if upvoted:
        record.voters.add(voter_id)
    else:
        record.voters.discard(voter_id)

    return records
