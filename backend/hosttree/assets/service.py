"""Asset service: the authoritative store for the ordered hierarchy.

Coordinates EventStore and StateProjector. Every write re-validates against
a fresh snapshot with the ordering core, lands as exactly one event, is
projected in one transaction, and is then announced on the ChangeNotifier.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel

from hosttree.assets.schemas import (
    AssetListResponse,
    CreateNodeRequest,
    MoveNodeRequest,
    MoveResponse,
    PatchNodeRequest,
    RepairResponse,
    TreeResponse,
)
from hosttree.db.connection import Database
from hosttree.events.projector import StateProjector
from hosttree.events.store import EventStore
from hosttree.models import (
    AssetNode,
    EventEnvelope,
    LinksRepairedPayload,
    NodeCreatedPayload,
    NodeDeletedPayload,
    NodeMovedPayload,
    NodeUpdatedPayload,
)
from hosttree.ordering.errors import (
    InvalidParentError,
    NodeNotFoundError,
    OrderingError,
)
from hosttree.ordering.moves import (
    compute_append,
    compute_move,
    compute_removal,
    compute_repair,
)
from hosttree.ordering.notifications import ChangeKind, ChangeNotice, ChangeNotifier
from hosttree.ordering.reconstruct import build_tree, tree_anomalies
from hosttree.ordering.repository import NodeRepository
from hosttree.utils.json import parse_json_list, parse_json_object

logger = logging.getLogger(__name__)


class AssetService:
    """Snapshot reads plus create/update/delete/move/repair for asset nodes."""

    def __init__(self, db: Database, notifier: ChangeNotifier | None = None) -> None:
        self._store = EventStore(db)
        self._projector = StateProjector(db)
        self._db = db
        self.notifier = notifier or ChangeNotifier()
        # Validation and the write it guards must see the same snapshot.
        self._write_lock = asyncio.Lock()

    # -- Reads --

    async def snapshot(self) -> NodeRepository:
        """A fresh repository over every projected node."""
        rows = await self._projector.get_nodes()
        logger.debug("Loaded snapshot of %d nodes", len(rows))
        return NodeRepository(self._node_from_row(row) for row in rows)

    async def list_nodes(self) -> AssetListResponse:
        rows = await self._projector.get_nodes()
        nodes = [self._node_from_row(row) for row in rows]
        return AssetListResponse(assets=nodes, total=len(nodes))

    async def get_tree(self) -> TreeResponse:
        """The ordered hierarchy plus any link inconsistencies found on the way."""
        repo = await self.snapshot()
        nodes = list(repo)
        anomalies = tree_anomalies(nodes)
        if anomalies:
            logger.warning(
                "Sibling links inconsistent, using fallback order: %s",
                "; ".join(f"{a.kind} {a.node_ids}" for a in anomalies),
            )
        return TreeResponse(roots=build_tree(nodes), total=len(nodes), anomalies=anomalies)

    async def get_node(self, node_id: str) -> AssetNode:
        row = await self._projector.get_node(node_id)
        if row is None:
            raise NodeNotFoundError(node_id)
        return self._node_from_row(row)

    # -- Writes --

    async def create_node(self, request: CreateNodeRequest) -> AssetNode:
        """Append a new node after the last child of its parent."""
        async with self._write_lock:
            repo = await self.snapshot()
            if request.parent_id is not None:
                parent = repo.get(request.parent_id)
                if parent is None:
                    raise InvalidParentError(request.parent_id, "does not exist")
                if not parent.is_container:
                    raise InvalidParentError(
                        request.parent_id, f"{parent.kind} nodes hold no children"
                    )

            node_id = str(uuid4())
            draft = AssetNode(
                node_id=node_id,
                name=request.name,
                kind=request.kind,
                parent_id=request.parent_id,
                created_at="",
            )
            payload = NodeCreatedPayload(
                node_id=node_id,
                name=request.name,
                kind=request.kind,
                description=request.description,
                config=request.config,
                tags=request.tags,
                parent_id=request.parent_id,
                links=compute_append(repo, draft),
            )
            event = await self._emit("NodeCreated", node_id, payload)

        logger.info("Created %s node %s under %s", request.kind, node_id, request.parent_id or "root")
        self._notify("created", [node_id], event)
        return await self.get_node(node_id)

    async def update_node(self, node_id: str, request: PatchNodeRequest) -> AssetNode:
        """Rename or edit payload fields. Emits one NodeUpdated carrying every change."""
        async with self._write_lock:
            current = await self.get_node(node_id)
            changes: dict[str, Any] = {}
            previous: dict[str, Any] = {}
            for field_name in request.model_fields_set:
                new_value = getattr(request, field_name)
                if new_value is None:
                    continue
                old_value = getattr(current, field_name)
                if new_value == old_value:
                    continue
                changes[field_name] = new_value
                previous[field_name] = old_value

            if not changes:
                return current
            payload = NodeUpdatedPayload(node_id=node_id, changes=changes, previous=previous)
            event = await self._emit("NodeUpdated", node_id, payload)

        logger.info("Updated node %s: %s", node_id, ", ".join(sorted(changes)))
        self._notify("updated", [node_id], event)
        return await self.get_node(node_id)

    async def delete_node(self, node_id: str) -> list[str]:
        """Delete a node and its subtree, closing the gap in its sibling chain.

        Returns every deleted id, node_id first.
        """
        async with self._write_lock:
            repo = await self.snapshot()
            repo.require(node_id)
            deleted = [node_id, *repo.descendants(node_id)]
            payload = NodeDeletedPayload(
                node_id=node_id,
                deleted_node_ids=deleted,
                links=compute_removal(repo, node_id),
            )
            event = await self._emit("NodeDeleted", node_id, payload)

        logger.info("Deleted node %s and %d descendants", node_id, len(deleted) - 1)
        self._notify("deleted", deleted, event)
        return deleted

    async def move_node(self, node_id: str, request: MoveNodeRequest) -> MoveResponse:
        """Reparent and/or reposition a node.

        The caller's own validation is advisory; this re-checks against the
        store's snapshot and rejects without writing anything on failure.
        """
        async with self._write_lock:
            repo = await self.snapshot()
            try:
                plan = compute_move(
                    repo,
                    node_id,
                    request.new_parent_id,
                    request.position,
                    request.target_sibling_id,
                )
            except OrderingError as e:
                logger.warning("Rejected move of %s: %s", node_id, e)
                raise

            if plan.is_noop:
                return MoveResponse(node=repo.require(node_id), updates=[])

            payload = NodeMovedPayload(
                node_id=node_id,
                new_parent_id=plan.new_parent_id,
                position=plan.position,
                reference_id=plan.reference_id,
                links=plan.updates,
            )
            event = await self._emit("NodeMoved", node_id, payload)

        logger.info(
            "Moved node %s: %s %s under %s",
            node_id,
            plan.position,
            plan.reference_id or "-",
            plan.new_parent_id or "root",
        )
        self._notify("moved", [u.node_id for u in plan.updates], event)
        return MoveResponse(node=await self.get_node(node_id), updates=plan.updates)

    async def repair_links(self) -> RepairResponse:
        """Rewrite every sibling chain so its links match the displayed order."""
        async with self._write_lock:
            repo = await self.snapshot()
            updates = compute_repair(repo)
            if not updates:
                return RepairResponse(updates=[])
            event = await self._emit("LinksRepaired", None, LinksRepairedPayload(links=updates))

        logger.info("Repaired links on %d nodes", len(updates))
        self._notify("repaired", [u.node_id for u in updates], event)
        return RepairResponse(updates=updates)

    async def rebuild_projection(self) -> int:
        """Drop the nodes table and re-project it from the event log.

        Returns the number of events replayed.
        """
        async with self._write_lock:
            events = await self._store.get_events()
            await self._db.execute("DELETE FROM nodes")
            await self._projector.project(events)

        logger.info("Rebuilt projection from %d events", len(events))
        return len(events)

    # -- Internals --

    async def _emit(
        self, event_type: str, node_id: str | None, payload: BaseModel
    ) -> EventEnvelope:
        event = EventEnvelope(
            event_id=str(uuid4()),
            node_id=node_id,
            timestamp=datetime.now(UTC),
            device_id="local",
            event_type=event_type,
            payload=payload.model_dump(),
        )
        await self._store.append(event)
        await self._projector.project([event])
        return event

    def _notify(self, kind: ChangeKind, node_ids: list[str], event: EventEnvelope) -> None:
        self.notifier.publish(
            ChangeNotice(kind=kind, node_ids=node_ids, sequence_num=event.sequence_num)
        )

    @staticmethod
    def _node_from_row(row: dict) -> AssetNode:
        """Convert a projected node row to an AssetNode."""
        return AssetNode(
            node_id=row["node_id"],
            name=row["name"],
            kind=row["kind"],
            description=row["description"] or "",
            config=parse_json_object(row["config"]),
            tags=parse_json_list(row["tags"]),
            parent_id=row["parent_id"],
            prev_id=row["prev_id"],
            next_id=row["next_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
