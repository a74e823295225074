"""Translate a pointer position over a tree row into a move.

resolve_intent() is called on every hover update and again at drop time
when the hover result was lost, so it must stay pure: same inputs, same
intent.
"""

import math
from typing import Literal

from hosttree.models import is_container_kind
from hosttree.ordering.moves import MoveRequest
from hosttree.ordering.repository import NodeRepository

DropIntent = Literal["before", "after", "append", "invalid"]

# Container rows: top third inserts before, bottom third after, middle nests.
UPPER_ZONE = 0.33
LOWER_ZONE = 0.66
# Rows that take no children (or with the modifier held) split in half.
MIDPOINT = 0.5


def resolve_intent(
    pointer_ratio: float,
    target_kind: str,
    modifier_active: bool = False,
    would_cycle: bool = False,
) -> DropIntent:
    """Classify a drop at pointer_ratio (0 = row top, 1 = row bottom).

    A NaN or infinite ratio is "invalid".
    """
    if not math.isfinite(pointer_ratio):
        return "invalid"
    ratio = min(max(pointer_ratio, 0.0), 1.0)

    if is_container_kind(target_kind) and not modifier_active:
        if ratio < UPPER_ZONE:
            intent: DropIntent = "before"
        elif ratio > LOWER_ZONE:
            intent = "after"
        else:
            intent = "append"
    else:
        intent = "before" if ratio < MIDPOINT else "after"

    if intent == "append" and would_cycle:
        return "invalid"
    return intent


def would_cycle(repo: NodeRepository, dragged_id: str, target_id: str) -> bool:
    """True when target is the dragged node itself or one of its descendants."""
    return repo.is_descendant_or_self(target_id, dragged_id)


def plan_move(
    repo: NodeRepository,
    dragged_id: str,
    target_id: str,
    intent: DropIntent,
) -> MoveRequest | None:
    """Turn a resolved intent into the request to submit, or None if it can't work."""
    dragged = repo.get(dragged_id)
    target = repo.get(target_id)
    if dragged is None or target is None or intent == "invalid":
        return None
    if dragged.node_id == target.node_id:
        return None

    if intent == "append":
        if not target.is_container or would_cycle(repo, dragged_id, target_id):
            return None
        return MoveRequest(new_parent_id=target.node_id, position="append")

    # Siblings as shown: an orphaned target sits at root.
    parent_id = repo.displayed_parent(target.node_id)
    if parent_id is not None and repo.is_descendant_or_self(parent_id, dragged_id):
        return None
    return MoveRequest(
        new_parent_id=parent_id,
        position=intent,
        target_sibling_id=target.node_id,
    )


def plan_root_drop(repo: NodeRepository, dragged_id: str) -> MoveRequest | None:
    """Drop on empty space below the rows: append at root level."""
    if dragged_id not in repo:
        return None
    return MoveRequest(new_parent_id=None, position="append")
