"""Move engine: validate a reparent/reposition and compute its link changes.

compute_move() reads a NodeRepository and returns a MovePlan describing the
new link triple of every node it touches. It never mutates the repository;
applying the plan is the store's job.
"""

from typing import Literal, get_args

from pydantic import BaseModel

from hosttree.models import AssetNode, LinkUpdate
from hosttree.ordering.errors import (
    CycleError,
    InvalidPositionError,
    SelfReferenceError,
)
from hosttree.ordering.reconstruct import reconstruct
from hosttree.ordering.repository import NodeRepository

MovePosition = Literal["append", "before", "after"]
POSITIONS: tuple[str, ...] = get_args(MovePosition)


class MoveRequest(BaseModel):
    """What to submit to the store: (new parent, position, reference sibling)."""

    new_parent_id: str | None = None
    position: MovePosition = "append"
    target_sibling_id: str | None = None


class MovePlan(BaseModel):
    node_id: str
    new_parent_id: str | None
    position: MovePosition
    reference_id: str | None = None
    updates: list[LinkUpdate]

    @property
    def is_noop(self) -> bool:
        return not self.updates


def normalize_position(position: str | None) -> MovePosition:
    """Lower-case the position; an empty one means append."""
    value = (position or "append").strip().lower()
    if value not in POSITIONS:
        raise InvalidPositionError(f"Invalid position: {position!r}")
    return value  # type: ignore[return-value]


class _WorkingLinks:
    """Copy-on-read link triples layered over an untouched repository."""

    def __init__(self, repo: NodeRepository) -> None:
        self._repo = repo
        self._state: dict[str, LinkUpdate] = {}

    def __getitem__(self, node_id: str) -> LinkUpdate:
        if node_id not in self._state:
            self._state[node_id] = self._repo.require(node_id).links()
        return self._state[node_id]

    def view(self, node: AssetNode) -> AssetNode:
        """node with its working links applied."""
        if node.node_id not in self._state:
            return node
        link = self._state[node.node_id]
        return node.model_copy(
            update={
                "parent_id": link.parent_id,
                "prev_id": link.prev_id,
                "next_id": link.next_id,
            }
        )

    def changed(self, first: str) -> list[LinkUpdate]:
        changed = [
            link
            for node_id, link in self._state.items()
            if link != self._repo.require(node_id).links()
        ]
        changed.sort(key=lambda link: (link.node_id != first, link.node_id))
        return changed


def _resolves(repo: NodeRepository, ref: str | None, owner: str) -> bool:
    return ref is not None and ref != owner and ref in repo


def _detach(repo: NodeRepository, links: _WorkingLinks, node_id: str) -> None:
    """Unlink node_id, joining its old neighbors to each other.

    A neighbor is only rewritten if it exists and still points back at
    node_id, so corrupt links are never copied onto a healthy node.
    """
    me = links[node_id]
    prev_id = me.prev_id if _resolves(repo, me.prev_id, node_id) else None
    next_id = me.next_id if _resolves(repo, me.next_id, node_id) else None
    if prev_id is not None and links[prev_id].next_id == node_id:
        links[prev_id].next_id = next_id
    if next_id is not None and links[next_id].prev_id == node_id:
        links[next_id].prev_id = prev_id
    me.prev_id = None
    me.next_id = None


def _relink(links: _WorkingLinks, parent_id: str | None, order: list[str]) -> None:
    """Set every triple in order to a clean chain under parent_id."""
    for i, node_id in enumerate(order):
        link = links[node_id]
        link.parent_id = parent_id
        link.prev_id = order[i - 1] if i > 0 else None
        link.next_id = order[i + 1] if i + 1 < len(order) else None


def _check_parent(repo: NodeRepository, node_id: str, parent_id: str | None) -> None:
    """Ancestor walk from the candidate parent up to the root."""
    if parent_id is None:
        return
    if repo.is_descendant_or_self(parent_id, node_id):
        raise CycleError(node_id, parent_id)


def compute_move(
    repo: NodeRepository,
    node_id: str,
    new_parent_id: str | None,
    position: str,
    reference_id: str | None = None,
) -> MovePlan:
    """Validate a move and return the link updates that realize it.

    Raises NodeNotFoundError, SelfReferenceError, CycleError or
    InvalidPositionError; nothing is computed unless every check passes.
    """
    node = repo.require(node_id)
    pos = normalize_position(position)
    if pos == "append":
        reference_id = None

    reference: AssetNode | None = None
    if reference_id is not None:
        if reference_id == node_id:
            raise SelfReferenceError(node_id)
        reference = repo.require(reference_id)

    if pos == "append":
        parent_id = new_parent_id
        if parent_id is not None:
            if parent_id == node_id:
                raise CycleError(node_id, parent_id)
            parent = repo.require(parent_id)
            if not parent.is_container:
                raise InvalidPositionError(
                    f"Cannot append into {parent_id}: {parent.kind} nodes hold no children"
                )
    else:
        if reference is None:
            raise InvalidPositionError(f"Position {pos!r} needs a reference sibling")
        parent_id = repo.displayed_parent(reference.node_id)
    _check_parent(repo, node_id, parent_id)

    links = _WorkingLinks(repo)
    _detach(repo, links, node_id)

    order = reconstruct(
        links.view(sibling)
        for sibling in repo.ordered_children(parent_id)
        if sibling.node_id != node_id
    )
    ids = [sibling.node_id for sibling in order]
    if pos == "append":
        slot = len(ids)
    elif pos == "before":
        slot = ids.index(reference.node_id)
    else:
        slot = ids.index(reference.node_id) + 1

    # Rewrite the whole destination chain. On a clean chain only the two
    # neighbors change; stale or branching claims in it are cleared too.
    ids.insert(slot, node_id)
    _relink(links, parent_id, ids)

    return MovePlan(
        node_id=node_id,
        new_parent_id=parent_id,
        position=pos,
        reference_id=reference_id if pos != "append" else None,
        updates=links.changed(first=node_id),
    )


def compute_append(repo: NodeRepository, node: AssetNode) -> list[LinkUpdate]:
    """Links for a brand-new node placed after its parent's last child.

    node is not in repo yet; its parent has already been validated.
    """
    order = repo.ordered_children(node.parent_id)
    updates = [
        LinkUpdate(
            node_id=node.node_id,
            parent_id=node.parent_id,
            prev_id=order[-1].node_id if order else None,
            next_id=None,
        )
    ]
    if order:
        tail = order[-1].links()
        tail.parent_id = node.parent_id
        tail.next_id = node.node_id
        updates.append(tail)
    return updates


def compute_removal(repo: NodeRepository, node_id: str) -> list[LinkUpdate]:
    """Links that close the gap left by deleting node_id (and its subtree)."""
    links = _WorkingLinks(repo)
    _detach(repo, links, node_id)
    return [link for link in links.changed(first=node_id) if link.node_id != node_id]


def compute_repair(repo: NodeRepository) -> list[LinkUpdate]:
    """Links that make the stored tree match the displayed one exactly.

    Nodes shown at root because their parent is missing or cyclic get
    parent_id None and join the root chain.
    """
    links = _WorkingLinks(repo)
    groups = repo.displayed_groups()
    for parent_id in sorted(groups, key=lambda p: (p is not None, p or "")):
        _relink(links, parent_id, [node.node_id for node in groups[parent_id]])
    return links.changed(first="")
