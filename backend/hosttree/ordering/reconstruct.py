"""Rebuild a deterministic sibling order from prev/next links.

reconstruct() never raises: branching, dangling and cyclic links degrade
to a stable (created_at, name) ordering instead of an error. Anomalies are
reported separately by chain_anomalies() so callers can decide whether to
log them.
"""

from collections import defaultdict
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, Field

from hosttree.models import AssetNode

AnomalyKind = Literal[
    "multiple_heads",
    "dangling_prev",
    "dangling_next",
    "self_loop",
    "branching",
    "asymmetric",
    "unreachable",
    "parent_cycle",
    "dangling_parent",
]


class ChainAnomaly(BaseModel):
    kind: AnomalyKind
    parent_id: str | None = None
    node_ids: list[str]


class TreeNode(BaseModel):
    node: AssetNode
    children: list["TreeNode"] = Field(default_factory=list)


def _stable(nodes: Iterable[AssetNode]) -> list[AssetNode]:
    return sorted(nodes, key=lambda n: n.sort_key())


def reconstruct(siblings: Iterable[AssetNode]) -> list[AssetNode]:
    """Order one parent's children by following their next links.

    Heads are nodes with no prev, or a prev outside the set. They are walked
    in stable-key order; each walk stops at an empty, foreign, or already
    visited next. Whatever is left (members of a pure cycle) is appended in
    stable-key order.
    """
    index = {node.node_id: node for node in siblings}
    heads = _stable(
        n for n in index.values() if n.prev_id is None or n.prev_id not in index
    )

    visited: set[str] = set()
    ordered: list[AssetNode] = []
    for head in heads:
        current: AssetNode | None = head
        while current is not None and current.node_id not in visited:
            ordered.append(current)
            visited.add(current.node_id)
            next_id = current.next_id
            if next_id is None or next_id == current.node_id:
                break
            current = index.get(next_id)

    leftovers = _stable(n for n in index.values() if n.node_id not in visited)
    ordered.extend(leftovers)
    return ordered


def chain_anomalies(
    siblings: Iterable[AssetNode], parent_id: str | None = None
) -> list[ChainAnomaly]:
    """Describe every way the sibling links deviate from one clean chain."""
    index = {node.node_id: node for node in siblings}
    if not index:
        return []
    anomalies: list[ChainAnomaly] = []

    def report(kind: AnomalyKind, ids: Iterable[str]) -> None:
        ids = sorted(ids)
        if ids:
            anomalies.append(ChainAnomaly(kind=kind, parent_id=parent_id, node_ids=ids))

    heads = [n for n in index.values() if n.prev_id is None or n.prev_id not in index]
    if len(heads) > 1:
        report("multiple_heads", (n.node_id for n in heads))

    report(
        "dangling_prev",
        (n.node_id for n in index.values() if n.prev_id is not None and n.prev_id not in index),
    )
    report(
        "dangling_next",
        (n.node_id for n in index.values() if n.next_id is not None and n.next_id not in index),
    )
    report(
        "self_loop",
        (
            n.node_id
            for n in index.values()
            if n.node_id in (n.prev_id, n.next_id)
        ),
    )

    claimed_next: dict[str, list[str]] = defaultdict(list)
    claimed_prev: dict[str, list[str]] = defaultdict(list)
    for n in index.values():
        if n.next_id in index:
            claimed_next[n.next_id].append(n.node_id)
        if n.prev_id in index:
            claimed_prev[n.prev_id].append(n.node_id)
    branching: set[str] = set()
    for target, claimants in [*claimed_next.items(), *claimed_prev.items()]:
        if len(claimants) > 1:
            branching.update(claimants)
            branching.add(target)
    report("branching", branching)

    report(
        "asymmetric",
        (
            n.node_id
            for n in index.values()
            if n.next_id in index
            and n.next_id != n.node_id
            and index[n.next_id].prev_id != n.node_id
        ),
    )

    walked = {h.node_id for h in heads}
    stack = list(heads)
    while stack:
        nxt = stack.pop().next_id
        if nxt in index and nxt not in walked:
            walked.add(nxt)
            stack.append(index[nxt])
    report("unreachable", (nid for nid in index if nid not in walked))

    return anomalies


def build_tree(nodes: Iterable[AssetNode]) -> list[TreeNode]:
    """Materialize the hierarchy, ordering every sibling group with reconstruct().

    Uses an explicit work stack. Nodes whose parent is missing from the
    snapshot are shown at root level; nodes trapped in a parent cycle are
    attached at root level too, with the cycle cut at the first revisit.
    """
    tree, _ = _build(nodes)
    return tree


def tree_anomalies(nodes: Iterable[AssetNode]) -> list[ChainAnomaly]:
    """chain_anomalies() for every sibling group, plus parent-level problems."""
    nodes = list(nodes)
    _, anomalies = _build(nodes)
    groups: dict[str | None, list[AssetNode]] = defaultdict(list)
    for node in nodes:
        groups[node.parent_id].append(node)
    for parent_id in sorted(groups, key=lambda p: (p is not None, p or "")):
        anomalies.extend(chain_anomalies(groups[parent_id], parent_id=parent_id))
    return anomalies


def _build(nodes: Iterable[AssetNode]) -> tuple[list[TreeNode], list[ChainAnomaly]]:
    index = {node.node_id: node for node in nodes}
    children: dict[str, list[AssetNode]] = defaultdict(list)
    top_level: list[AssetNode] = []
    orphans: list[str] = []
    for node in index.values():
        if node.parent_id is None:
            top_level.append(node)
        elif node.parent_id not in index:
            top_level.append(node)
            orphans.append(node.node_id)
        else:
            children[node.parent_id].append(node)

    visited: set[str] = set()
    roots: list[TreeNode] = []

    def expand(stack: list[TreeNode]) -> None:
        while stack:
            item = stack.pop()
            kids = [
                TreeNode(node=child)
                for child in reconstruct(children.get(item.node.node_id, ()))
                if child.node_id not in visited
            ]
            visited.update(k.node.node_id for k in kids)
            item.children = kids
            stack.extend(reversed(kids))

    for node in reconstruct(top_level):
        visited.add(node.node_id)
        roots.append(TreeNode(node=node))
    expand(list(reversed(roots)))

    anomalies: list[ChainAnomaly] = []
    if orphans:
        anomalies.append(ChainAnomaly(kind="dangling_parent", node_ids=sorted(orphans)))

    # Anything still unvisited hangs off a parent cycle.
    trapped = [n for n in _stable(index.values()) if n.node_id not in visited]
    if trapped:
        anomalies.append(
            ChainAnomaly(kind="parent_cycle", node_ids=sorted(n.node_id for n in trapped))
        )
    for node in trapped:
        if node.node_id in visited:
            continue
        visited.add(node.node_id)
        item = TreeNode(node=node)
        roots.append(item)
        expand([item])

    return roots, anomalies
