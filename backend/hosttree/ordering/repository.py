"""Per-snapshot node index.

A NodeRepository is built once from one fetched snapshot and never
mutated afterwards. Build a fresh one for every snapshot instead of
patching an old one.
"""

from collections import defaultdict, deque
from collections.abc import Iterable, Iterator

from hosttree.models import AssetNode
from hosttree.ordering.errors import NodeNotFoundError
from hosttree.ordering.reconstruct import build_tree


class NodeRepository:
    """O(1) lookup by id and by parent over one immutable snapshot.

    The displayed layout (build_tree() grouping) is computed on first use.
    """

    def __init__(self, nodes: Iterable[AssetNode]) -> None:
        self._by_id: dict[str, AssetNode] = {}
        self._children: dict[str | None, list[AssetNode]] = defaultdict(list)
        for node in nodes:
            self._by_id[node.node_id] = node
        for node in self._by_id.values():
            self._children[node.parent_id].append(node)
        self._shown: dict[str | None, list[AssetNode]] | None = None
        self._shown_parent: dict[str, str | None] = {}

    @classmethod
    def from_rows(cls, rows: Iterable[dict]) -> "NodeRepository":
        return cls(AssetNode.model_validate(row) for row in rows)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def __iter__(self) -> Iterator[AssetNode]:
        return iter(self._by_id.values())

    def get(self, node_id: str | None) -> AssetNode | None:
        if node_id is None:
            return None
        return self._by_id.get(node_id)

    def require(self, node_id: str) -> AssetNode:
        node = self._by_id.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def children_of(self, parent_id: str | None) -> list[AssetNode]:
        """Unordered children; parent_id None means root level."""
        return list(self._children.get(parent_id, ()))

    def ordered_children(self, parent_id: str | None) -> list[AssetNode]:
        """Children in displayed order, as build_tree() shows them.

        Root level includes nodes whose parent is missing and the node where
        a parent cycle was cut.
        """
        return list(self._layout().get(parent_id, ()))

    def displayed_parent(self, node_id: str) -> str | None:
        """The parent node_id is shown under, which differs from its stored
        parent_id only when that reference is dangling or cyclic."""
        self.require(node_id)
        self._layout()
        return self._shown_parent[node_id]

    def displayed_groups(self) -> dict[str | None, list[AssetNode]]:
        """Every non-empty sibling group, keyed by displayed parent, in order."""
        return {parent: list(kids) for parent, kids in self._layout().items()}

    def _layout(self) -> dict[str | None, list[AssetNode]]:
        if self._shown is None:
            shown: dict[str | None, list[AssetNode]] = {}
            stack: list[tuple[str | None, list]] = [(None, build_tree(self._by_id.values()))]
            while stack:
                parent_id, items = stack.pop()
                if not items:
                    continue
                shown[parent_id] = [item.node for item in items]
                for item in items:
                    self._shown_parent[item.node.node_id] = parent_id
                    stack.append((item.node.node_id, item.children))
            self._shown = shown
        return self._shown

    def ancestors(self, node_id: str | None) -> Iterator[str]:
        """Yield node_id, then each displayed parent up to the root.

        This is parent_id wherever it resolves. A dangling parent ends the walk
        at the root, and a parent cycle is cut where build_tree() cuts it. A
        missing node_id is yielded alone.
        """
        self._layout()
        seen: set[str] = set()
        current = node_id
        while current is not None and current not in seen:
            seen.add(current)
            yield current
            current = self._shown_parent.get(current)

    def is_descendant_or_self(self, candidate_id: str | None, ancestor_id: str) -> bool:
        """Ancestor walk: True if ancestor_id is candidate_id or one of its parents."""
        return any(nid == ancestor_id for nid in self.ancestors(candidate_id))

    def descendants(self, node_id: str) -> list[str]:
        """Every id below node_id, breadth-first, guarded against cycles."""
        found: list[str] = []
        seen = {node_id}
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for child in self._children.get(current, ()):
                if child.node_id not in seen:
                    seen.add(child.node_id)
                    found.append(child.node_id)
                    queue.append(child.node_id)
        return found
