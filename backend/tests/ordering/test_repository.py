"""Tests for NodeRepository lookups and parent-chain walks."""

import pytest

from hosttree.ordering.errors import NodeNotFoundError
from hosttree.ordering.repository import NodeRepository
from tests.fixtures import ids, make_chain, make_node


@pytest.fixture
def repo():
    """prod/ holds web, db and staging/; staging/ holds api."""
    return NodeRepository(
        [
            *make_chain(["prod", "lab"], kind="folder"),
            make_node("web", parent_id="prod", next_id="db"),
            make_node("db", parent_id="prod", prev_id="web", next_id="staging"),
            make_node("staging", kind="folder", parent_id="prod", prev_id="db"),
            make_node("api", parent_id="staging"),
        ]
    )


class TestLookup:
    def test_len_and_contains(self, repo):
        assert len(repo) == 6
        assert "web" in repo
        assert "nope" not in repo
        assert None not in repo

    def test_get(self, repo):
        assert repo.get("db").name == "db"
        assert repo.get("nope") is None
        assert repo.get(None) is None

    def test_require_raises(self, repo):
        with pytest.raises(NodeNotFoundError) as exc_info:
            repo.require("nope")
        assert exc_info.value.node_id == "nope"

    def test_from_rows(self):
        repo = NodeRepository.from_rows(
            [{"node_id": "x", "name": "x", "kind": "ssh", "prev_id": "", "created_at": "t"}]
        )
        assert repo.require("x").prev_id is None

    def test_iter_yields_every_node(self, repo):
        assert sorted(ids(list(repo))) == ["api", "db", "lab", "prod", "staging", "web"]

    def test_later_duplicate_wins(self):
        repo = NodeRepository([make_node("x", name="old"), make_node("x", name="new")])
        assert len(repo) == 1
        assert repo.require("x").name == "new"


class TestChildren:
    def test_children_of_root(self, repo):
        assert sorted(ids(repo.children_of(None))) == ["lab", "prod"]

    def test_children_of_leaf_is_empty(self, repo):
        assert repo.children_of("web") == []

    def test_ordered_children(self, repo):
        assert ids(repo.ordered_children("prod")) == ["web", "db", "staging"]

    def test_displayed_groups(self, repo):
        groups = repo.displayed_groups()
        assert set(groups) == {None, "prod", "staging"}
        assert ids(groups[None]) == ["prod", "lab"]

    def test_orphan_shown_at_root(self):
        repo = NodeRepository(
            [
                make_node("a", created_at="2026-01-01T00:00:00+00:00"),
                make_node("x", parent_id="gone", created_at="2026-01-01T00:00:05+00:00"),
            ]
        )
        assert ids(repo.ordered_children(None)) == ["a", "x"]
        assert repo.children_of(None) == [repo.require("a")]
        assert repo.ordered_children("gone") == []


class TestDisplayedParent:
    def test_resolving_parent(self, repo):
        assert repo.displayed_parent("api") == "staging"
        assert repo.displayed_parent("prod") is None

    def test_dangling_parent_is_root(self):
        repo = NodeRepository([make_node("x", parent_id="gone")])
        assert repo.displayed_parent("x") is None

    def test_parent_cycle_cut_at_root(self):
        repo = NodeRepository(
            [
                make_node("p", kind="folder", parent_id="q"),
                make_node("q", kind="folder", parent_id="p"),
            ]
        )
        assert repo.displayed_parent("p") is None
        assert repo.displayed_parent("q") == "p"

    def test_missing_node_raises(self, repo):
        with pytest.raises(NodeNotFoundError):
            repo.displayed_parent("nope")


class TestAncestry:
    def test_ancestors(self, repo):
        assert list(repo.ancestors("api")) == ["api", "staging", "prod"]

    def test_ancestors_of_none(self, repo):
        assert list(repo.ancestors(None)) == []

    def test_ancestors_stop_at_missing_parent(self):
        repo = NodeRepository([make_node("x", parent_id="gone")])
        assert list(repo.ancestors("x")) == ["x"]

    def test_ancestors_guard_parent_cycle(self):
        repo = NodeRepository(
            [
                make_node("p", kind="folder", parent_id="q"),
                make_node("q", kind="folder", parent_id="p"),
            ]
        )
        assert list(repo.ancestors("p")) == ["p"]
        assert list(repo.ancestors("q")) == ["q", "p"]

    def test_is_descendant_or_self(self, repo):
        assert repo.is_descendant_or_self("api", "prod")
        assert repo.is_descendant_or_self("prod", "prod")
        assert not repo.is_descendant_or_self("prod", "api")
        assert not repo.is_descendant_or_self("lab", "prod")

    def test_descendants(self, repo):
        assert repo.descendants("prod") == ["web", "db", "staging", "api"]
        assert repo.descendants("web") == []

    def test_descendants_guard_parent_cycle(self):
        repo = NodeRepository(
            [
                make_node("p", kind="folder", parent_id="q"),
                make_node("q", kind="folder", parent_id="p"),
            ]
        )
        assert repo.descendants("p") == ["q"]
