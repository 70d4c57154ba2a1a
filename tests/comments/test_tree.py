"""Tests for reply tree assembly and subtree collection."""

from page_comments.comments.models import Comment, SortOrder, StoredComment
from page_comments.comments.tree import (
    assemble_tree,
    collect_subtree_ids,
    flatten_tree,
    sort_comments,
)


def _comment(comment_id: str, parent: str | None = None, votes: int = 0) -> Comment:
    return Comment(
        id=comment_id,
        parent=parent,
        content=comment_id,
        created="2024-05-01T10:00:00.000Z",
        modified="2024-05-01T10:00:00.000Z",
        fullname="Alice Martin",
        userid=7,
        upvote_count=votes,
    )


def _ids(nodes) -> list[str]:
    return [node.comment.id for node in nodes]


class TestSortComments:
    """Tests for sort_comments."""

    def test_newest_keeps_stored_order(self) -> None:
        comments = [_comment("a"), _comment("b"), _comment("c")]
        assert [c.id for c in sort_comments(comments, SortOrder.NEWEST)] == [
            "a",
            "b",
            "c",
        ]

    def test_oldest_reverses(self) -> None:
        comments = [_comment("a"), _comment("b"), _comment("c")]
        assert [c.id for c in sort_comments(comments, SortOrder.OLDEST)] == [
            "c",
            "b",
            "a",
        ]

    def test_popular_is_stable_descending(self) -> None:
        """Ties keep their stored order."""
        comments = [
            _comment("a", votes=1),
            _comment("b", votes=3),
            _comment("c", votes=1),
            _comment("d", votes=3),
        ]
        assert [c.id for c in sort_comments(comments, SortOrder.POPULAR)] == [
            "b",
            "d",
            "a",
            "c",
        ]


class TestAssembleTree:
    """Tests for assemble_tree."""

    def test_nests_replies_under_parents(self) -> None:
        comments = [_comment("a"), _comment("b", "a"), _comment("c", "b")]

        roots = assemble_tree(comments)

        assert _ids(roots) == ["a"]
        assert _ids(roots[0].replies) == ["b"]
        assert _ids(roots[0].replies[0].replies) == ["c"]

    def test_dangling_parent_becomes_root(self) -> None:
        """A reply whose parent is gone is shown at top level."""
        roots = assemble_tree([_comment("a"), _comment("x", "deleted")])

        assert _ids(roots) == ["a", "x"]

    def test_sort_applies_before_nesting(self) -> None:
        """Replies follow the chosen order too."""
        comments = [
            _comment("a"),
            _comment("r1", "a", votes=1),
            _comment("r2", "a", votes=5),
            _comment("b", votes=2),
        ]

        popular = assemble_tree(comments, SortOrder.POPULAR)
        oldest = assemble_tree(comments, SortOrder.OLDEST)

        assert _ids(popular) == ["b", "a"]
        assert _ids(popular[1].replies) == ["r2", "r1"]
        assert _ids(oldest) == ["b", "a"]
        assert _ids(oldest[1].replies) == ["r2", "r1"]

    def test_every_comment_appears_once(self) -> None:
        comments = [
            _comment("a"),
            _comment("b", "a"),
            _comment("c"),
            _comment("d", "b"),
            _comment("e", "missing"),
        ]

        flat = flatten_tree(assemble_tree(comments))

        assert sorted(c.id for c in flat) == ["a", "b", "c", "d", "e"]

    def test_parent_cycle_members_become_roots(self) -> None:
        comments = [
            _comment("a", "b"),
            _comment("b", "a"),
            _comment("c", "a"),
            _comment("s", "s"),
            _comment("r"),
        ]

        roots = assemble_tree(comments)

        assert _ids(roots) == ["a", "b", "s", "r"]
        assert _ids(roots[0].replies) == ["c"]
        assert sorted(c.id for c in flatten_tree(roots)) == ["a", "b", "c", "r", "s"]

    def test_empty(self) -> None:
        assert assemble_tree([]) == []


class TestFlattenTree:
    """Tests for flatten_tree."""

    def test_pre_order(self) -> None:
        comments = [_comment("a"), _comment("b", "a"), _comment("c"), _comment("d", "b")]

        flat = flatten_tree(assemble_tree(comments))

        assert [c.id for c in flat] == ["a", "b", "d", "c"]


class TestCollectSubtreeIds:
    """Tests for collect_subtree_ids."""

    def _stored(self, comment_id: str, parent: str | None = None) -> StoredComment:
        return StoredComment(
            id=comment_id,
            parent=parent,
            content="",
            created="",
            modified="",
            fullname="",
            userid=7,
        )

    def test_collects_all_descendants(self) -> None:
        comments = [
            self._stored("a"),
            self._stored("b", "a"),
            self._stored("c", "b"),
            self._stored("d", "a"),
            self._stored("e"),
        ]

        assert collect_subtree_ids(comments, "a") == {"a", "b", "c", "d"}

    def test_leaf_collects_itself(self) -> None:
        comments = [self._stored("a"), self._stored("b", "a")]

        assert collect_subtree_ids(comments, "b") == {"b"}

    def test_deep_chain(self) -> None:
        """Deep reply chains do not hit recursion limits."""
        depth = 5000
        comments = [self._stored("0")] + [
            self._stored(str(i), str(i - 1)) for i in range(1, depth)
        ]

        assert len(collect_subtree_ids(comments, "0")) == depth

    def test_parent_cycle_terminates(self) -> None:
        comments = [self._stored("a", "b"), self._stored("b", "a")]

        assert collect_subtree_ids(comments, "a") == {"a", "b"}
