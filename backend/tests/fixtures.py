"""Shared test helpers."""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from httpx import AsyncClient

from hosttree.models import AssetNode, EventEnvelope, LinkUpdate, NodeCreatedPayload
from hosttree.ordering.reconstruct import TreeNode
from hosttree.ordering.repository import NodeRepository


def make_node(
    node_id: str,
    name: str | None = None,
    kind: str = "local",
    parent_id: str | None = None,
    prev_id: str | None = None,
    next_id: str | None = None,
    created_at: str = "2026-01-01T00:00:00+00:00",
    **fields: Any,
) -> AssetNode:
    """Build an AssetNode with explicit links. name defaults to node_id."""
    return AssetNode(
        node_id=node_id,
        name=name if name is not None else node_id,
        kind=kind,
        parent_id=parent_id,
        prev_id=prev_id,
        next_id=next_id,
        created_at=created_at,
        **fields,
    )


def make_chain(
    ids: list[str],
    parent_id: str | None = None,
    kind: str = "local",
) -> list[AssetNode]:
    """Siblings correctly linked in the given order, created one second apart."""
    nodes = []
    for i, node_id in enumerate(ids):
        nodes.append(
            make_node(
                node_id,
                kind=kind,
                parent_id=parent_id,
                prev_id=ids[i - 1] if i > 0 else None,
                next_id=ids[i + 1] if i + 1 < len(ids) else None,
                created_at=f"2026-01-01T00:00:{i:02d}+00:00",
            )
        )
    return nodes


def ids(nodes: list[AssetNode]) -> list[str]:
    return [n.node_id for n in nodes]


def tree_ids(roots: list[TreeNode]) -> list:
    """Nested (id, [children...]) tuples for compact tree assertions."""
    return [(item.node.node_id, tree_ids(item.children)) for item in roots]


def apply_updates(repo: NodeRepository, updates: list[LinkUpdate]) -> NodeRepository:
    """A new repository with the link updates written onto the old snapshot."""
    by_id = {u.node_id: u for u in updates}
    nodes = []
    for node in repo:
        link = by_id.get(node.node_id)
        if link is not None:
            node = node.model_copy(
                update={
                    "parent_id": link.parent_id,
                    "prev_id": link.prev_id,
                    "next_id": link.next_id,
                }
            )
        nodes.append(node)
    return NodeRepository(nodes)


def make_node_created_envelope(
    node_id: str | None = None,
    name: str = "web-01",
    kind: str = "ssh",
    parent_id: str | None = None,
    links: list[LinkUpdate] | None = None,
    **payload_overrides: Any,
) -> EventEnvelope:
    """Create a NodeCreated EventEnvelope for testing."""
    node_id = node_id or str(uuid4())
    payload = NodeCreatedPayload(
        node_id=node_id,
        name=name,
        kind=kind,
        parent_id=parent_id,
        links=links if links is not None else [LinkUpdate(node_id=node_id, parent_id=parent_id)],
        **payload_overrides,
    )
    return EventEnvelope(
        event_id=str(uuid4()),
        node_id=node_id,
        timestamp=datetime.now(UTC),
        device_id="test",
        event_type="NodeCreated",
        payload=payload.model_dump(),
    )


def make_envelope(event_type: str, payload: dict, node_id: str | None = None) -> EventEnvelope:
    return EventEnvelope(
        event_id=str(uuid4()),
        node_id=node_id,
        timestamp=datetime.now(UTC),
        device_id="test",
        event_type=event_type,
        payload=payload,
    )


# -- API-level helpers --


async def create_test_node(
    client: AsyncClient,
    name: str = "web-01",
    kind: str = "ssh",
    parent_id: str | None = None,
    **fields: Any,
) -> dict:
    """Create a node via the API and return the response JSON."""
    body: dict = {"name": name, "kind": kind, **fields}
    if parent_id is not None:
        body["parent_id"] = parent_id
    resp = await client.post("/api/assets", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_named_nodes(
    client: AsyncClient,
    names: list[str],
    kind: str = "ssh",
    parent_id: str | None = None,
) -> dict[str, str]:
    """Create siblings in order. Returns {name: node_id}."""
    created = {}
    for name in names:
        node = await create_test_node(client, name=name, kind=kind, parent_id=parent_id)
        created[name] = node["node_id"]
    return created


async def child_names(client: AsyncClient, parent_id: str | None = None) -> list[str]:
    """Names of parent_id's children in displayed order, via GET /api/assets/tree."""
    resp = await client.get("/api/assets/tree")
    assert resp.status_code == 200
    roots = resp.json()["roots"]
    if parent_id is None:
        return [item["node"]["name"] for item in roots]

    stack = list(roots)
    while stack:
        item = stack.pop()
        if item["node"]["node_id"] == parent_id:
            return [child["node"]["name"] for child in item["children"]]
        stack.extend(item["children"])
    raise AssertionError(f"{parent_id} not in tree")
