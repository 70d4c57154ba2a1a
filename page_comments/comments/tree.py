"""Reply tree assembly.

Comments are stored flat with a ``parent`` pointer. Sorting happens on the
flat list; nesting then keeps that order among siblings.
"""

from collections.abc import Iterable, Sequence

from .models import Comment, CommentNode, SortOrder, StoredComment


def sort_comments(
    comments: Sequence[Comment], order: SortOrder = SortOrder.NEWEST
) -> list[Comment]:
    """Order a flat comment list for display.

    - ``Newest``: stored (append) order
    - ``Oldest``: stored order reversed
    - ``Popular``: descending ``upvote_count``; ties keep stored order
    """
    if order is SortOrder.OLDEST:
        return list(reversed(comments))
    if order is SortOrder.POPULAR:
        # sorted() is stable
        return sorted(comments, key=lambda c: c.upvote_count, reverse=True)
    return list(comments)


def _cycle_members(comments: Iterable[StoredComment]) -> set[str]:
    """Ids of comments whose parent chain loops back on itself."""
    parents = {comment.id: comment.parent for comment in comments}
    cyclic: set[str] = set()
    visited: set[str] = set()

    for start in parents:
        path: list[str] = []
        current = start
        while current in parents and current not in visited:
            visited.add(current)
            path.append(current)
            current = parents[current]
        if current in path:
            cyclic.update(path[path.index(current) :])
    return cyclic


def assemble_tree(
    comments: Sequence[Comment], order: SortOrder = SortOrder.NEWEST
) -> list[CommentNode]:
    """Nest a flat comment list into reply trees.

    Comments whose parent is null or not present in the list become roots.
    So do comments on a parent cycle (including self-parented ones), which
    would otherwise be unreachable.
    """
    ordered = sort_comments(comments, order)
    nodes = {comment.id: CommentNode(comment=comment) for comment in ordered}
    cyclic = _cycle_members(ordered)

    roots = []
    for comment in ordered:
        node = nodes[comment.id]
        if comment.parent in nodes and comment.id not in cyclic:
            nodes[comment.parent].replies.append(node)
        else:
            roots.append(node)
    return roots


def flatten_tree(nodes: Iterable[CommentNode]) -> list[Comment]:
    """Pre-order flattening: each node, then its replies."""
    flat: list[Comment] = []
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        flat.append(node.comment)
        stack.extend(reversed(node.replies))
    return flat


def collect_subtree_ids(comments: Iterable[StoredComment], root_id: str) -> set[str]:
    """Return ``root_id`` plus the ids of all its transitive replies."""
    children: dict[str, list[str]] = {}
    for comment in comments:
        if comment.parent:
            children.setdefault(comment.parent, []).append(comment.id)

    collected: set[str] = set()
    worklist = [root_id]
    while worklist:
        comment_id = worklist.pop()
        if comment_id in collected:
            continue
        collected.add(comment_id)
        worklist.extend(children.get(comment_id, []))
    return collected
