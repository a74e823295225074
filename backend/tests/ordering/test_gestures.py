"""Tests for drop-intent resolution and move planning."""

import pytest

from hosttree.ordering.gestures import (
    plan_move,
    plan_root_drop,
    resolve_intent,
    would_cycle,
)
from hosttree.ordering.moves import MoveRequest
from hosttree.ordering.repository import NodeRepository
from tests.fixtures import make_node


@pytest.fixture
def repo():
    """prod/ holds web and staging/; staging/ holds api; root also has laptop."""
    return NodeRepository(
        [
            make_node("prod", kind="folder", next_id="laptop"),
            make_node("laptop", prev_id="prod"),
            make_node("web", kind="ssh", parent_id="prod", next_id="staging"),
            make_node("staging", kind="folder", parent_id="prod", prev_id="web"),
            make_node("api", kind="docker_host", parent_id="staging"),
        ]
    )


class TestResolveIntentContainer:
    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [
            (0.0, "before"),
            (0.1, "before"),
            (0.32, "before"),
            (0.33, "append"),
            (0.5, "append"),
            (0.66, "append"),
            (0.67, "after"),
            (0.9, "after"),
            (1.0, "after"),
        ],
    )
    def test_three_zones(self, ratio, expected):
        assert resolve_intent(ratio, "folder", False, False) == expected

    def test_docker_host_is_a_container(self):
        assert resolve_intent(0.5, "docker_host") == "append"

    def test_modifier_forces_two_zones(self):
        assert resolve_intent(0.4, "folder", modifier_active=True) == "before"
        assert resolve_intent(0.5, "folder", modifier_active=True) == "after"

    def test_would_cycle_downgrades_append(self):
        assert resolve_intent(0.5, "folder", would_cycle=True) == "invalid"

    def test_would_cycle_leaves_edges_alone(self):
        assert resolve_intent(0.1, "folder", would_cycle=True) == "before"
        assert resolve_intent(0.9, "folder", would_cycle=True) == "after"


class TestResolveIntentLeaf:
    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [(0.0, "before"), (0.49, "before"), (0.5, "after"), (0.51, "after"), (1.0, "after")],
    )
    def test_two_zones(self, ratio, expected):
        assert resolve_intent(ratio, "ssh", False, False) == expected

    def test_leaf_never_appends(self):
        for kind in ("local", "ssh"):
            for i in range(11):
                assert resolve_intent(i / 10, kind) in ("before", "after")

    def test_would_cycle_ignored_on_leaf(self):
        assert resolve_intent(0.5, "local", would_cycle=True) == "after"


class TestResolveIntentPurity:
    def test_out_of_range_is_clamped(self):
        assert resolve_intent(-3.0, "folder") == "before"
        assert resolve_intent(7.5, "folder") == "after"

    @pytest.mark.parametrize("ratio", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_ratio_is_invalid(self, ratio):
        assert resolve_intent(ratio, "folder") == "invalid"
        assert resolve_intent(ratio, "ssh") == "invalid"

    def test_hover_and_drop_agree(self):
        """The same inputs resolve the same way on every call."""
        args = (0.45, "folder", False, True)
        assert resolve_intent(*args) == resolve_intent(*args) == "invalid"


class TestWouldCycle:
    def test_onto_self(self, repo):
        assert would_cycle(repo, "prod", "prod")

    def test_onto_descendant(self, repo):
        assert would_cycle(repo, "prod", "api")

    def test_onto_unrelated(self, repo):
        assert not would_cycle(repo, "staging", "laptop")
        assert not would_cycle(repo, "api", "prod")


class TestPlanMove:
    def test_append_onto_folder(self, repo):
        assert plan_move(repo, "laptop", "staging", "append") == MoveRequest(
            new_parent_id="staging", position="append"
        )

    def test_before_takes_target_parent(self, repo):
        assert plan_move(repo, "laptop", "web", "before") == MoveRequest(
            new_parent_id="prod", position="before", target_sibling_id="web"
        )

    def test_after_root_row(self, repo):
        assert plan_move(repo, "web", "laptop", "after") == MoveRequest(
            new_parent_id=None, position="after", target_sibling_id="laptop"
        )

    def test_onto_self(self, repo):
        assert plan_move(repo, "web", "web", "before") is None

    def test_invalid_intent(self, repo):
        assert plan_move(repo, "laptop", "staging", "invalid") is None

    def test_unknown_ids(self, repo):
        assert plan_move(repo, "ghost", "web", "before") is None
        assert plan_move(repo, "web", "ghost", "before") is None

    def test_append_onto_leaf(self, repo):
        assert plan_move(repo, "laptop", "web", "append") is None

    def test_append_into_own_subtree(self, repo):
        assert plan_move(repo, "prod", "staging", "append") is None

    def test_beside_own_descendant(self, repo):
        assert plan_move(repo, "prod", "web", "after") is None
        assert plan_move(repo, "staging", "api", "before") is None

    def test_beside_own_child_at_root_level_is_allowed(self, repo):
        """Moving a child next to its own former parent is fine."""
        assert plan_move(repo, "web", "prod", "before") == MoveRequest(
            new_parent_id=None, position="before", target_sibling_id="prod"
        )


    def test_beside_orphan_targets_root(self, repo):
        """A row whose parent is gone is shown at root, so dropping beside it lands there."""
        orphaned = NodeRepository([*repo, make_node("stray", parent_id="gone")])
        assert plan_move(orphaned, "web", "stray", "after") == MoveRequest(
            new_parent_id=None, position="after", target_sibling_id="stray"
        )


class TestPlanRootDrop:
    def test_appends_at_root(self, repo):
        assert plan_root_drop(repo, "api") == MoveRequest(new_parent_id=None, position="append")

    def test_unknown_node(self, repo):
        assert plan_root_drop(repo, "ghost") is None
