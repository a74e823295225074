"""State projector: projects events into the materialized nodes table.

The read side of the CQRS pattern. Every structural event carries the full
link triples it changes, so projecting is a matter of writing those triples
back. All statements for one event run in a single transaction.
"""

import json
import logging
from collections.abc import Awaitable, Callable

from hosttree.db.connection import Database
from hosttree.models import (
    EventEnvelope,
    LinksRepairedPayload,
    LinkUpdate,
    NodeCreatedPayload,
    NodeDeletedPayload,
    NodeMovedPayload,
    NodeUpdatedPayload,
)

logger = logging.getLogger(__name__)


def _timestamp(event: EventEnvelope) -> str:
    return (
        event.timestamp.isoformat()
        if hasattr(event.timestamp, "isoformat")
        else str(event.timestamp)
    )


def _link_statements(links: list[LinkUpdate], timestamp: str) -> list[tuple[str, tuple]]:
    return [
        (
            "UPDATE nodes SET parent_id = ?, prev_id = ?, next_id = ?, updated_at = ? "
            "WHERE node_id = ?",
            (link.parent_id, link.prev_id, link.next_id, timestamp, link.node_id),
        )
        for link in links
    ]


class StateProjector:
    """Projects events into the materialized nodes table."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._handlers: dict[str, Callable[[EventEnvelope], Awaitable[None]]] = {
            "NodeCreated": self._handle_node_created,
            "NodeUpdated": self._handle_node_updated,
            "NodeMoved": self._handle_node_moved,
            "NodeDeleted": self._handle_node_deleted,
            "LinksRepaired": self._handle_links_repaired,
        }

    async def project(self, events: list[EventEnvelope]) -> None:
        """Project a batch of events into materialized tables."""
        for event in events:
            handler = self._handlers.get(event.event_type)
            if handler:
                await handler(event)
            else:
                logger.warning("No projection for event type %r", event.event_type)

    async def get_node(self, node_id: str) -> dict | None:
        """Read one projected node. Returns None if not found."""
        row = await self._db.fetchone(
            "SELECT * FROM nodes WHERE node_id = ?", (node_id,)
        )
        if row is None:
            return None
        return dict(row)

    async def get_nodes(self) -> list[dict]:
        """Read every projected node, ordered by creation time."""
        rows = await self._db.fetchall(
            "SELECT * FROM nodes ORDER BY created_at, node_id"
        )
        return [dict(row) for row in rows]

    async def _handle_node_created(self, event: EventEnvelope) -> None:
        """Insert the new node, then link it behind the former tail."""
        payload = NodeCreatedPayload.model_validate(event.payload)
        timestamp = _timestamp(event)
        statements: list[tuple[str, tuple]] = [
            (
                """
                INSERT OR REPLACE INTO nodes
                    (node_id, name, kind, description, config, tags,
                     parent_id, prev_id, next_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, NULL, NULL, ?, ?)
                """,
                (
                    payload.node_id,
                    payload.name,
                    payload.kind,
                    payload.description,
                    json.dumps(payload.config),
                    json.dumps(payload.tags),
                    payload.parent_id,
                    timestamp,
                    timestamp,
                ),
            )
        ]
        statements.extend(_link_statements(payload.links, timestamp))
        await self._db.execute_many(statements)

    _UPDATABLE_FIELDS = {"name", "description", "config", "tags"}

    async def _handle_node_updated(self, event: EventEnvelope) -> None:
        """Project a NodeUpdated event: one column per changed field."""
        payload = NodeUpdatedPayload.model_validate(event.payload)
        timestamp = _timestamp(event)
        statements: list[tuple[str, tuple]] = []
        for field, value in payload.changes.items():
            if field not in self._UPDATABLE_FIELDS:
                logger.warning("NodeUpdated: unknown field %r, skipping", field)
                continue
            if field in ("config", "tags"):
                value = json.dumps(value)
            statements.append(
                (
                    f"UPDATE nodes SET {field} = ?, updated_at = ? WHERE node_id = ?",
                    (value, timestamp, payload.node_id),
                )
            )
        if statements:
            await self._db.execute_many(statements)

    async def _handle_node_moved(self, event: EventEnvelope) -> None:
        payload = NodeMovedPayload.model_validate(event.payload)
        await self._db.execute_many(_link_statements(payload.links, _timestamp(event)))

    async def _handle_node_deleted(self, event: EventEnvelope) -> None:
        """Relink the surviving neighbors, then drop the deleted subtree."""
        payload = NodeDeletedPayload.model_validate(event.payload)
        statements = _link_statements(payload.links, _timestamp(event))
        statements.extend(
            ("DELETE FROM nodes WHERE node_id = ?", (node_id,))
            for node_id in payload.deleted_node_ids
        )
        await self._db.execute_many(statements)

    async def _handle_links_repaired(self, event: EventEnvelope) -> None:
        payload = LinksRepairedPayload.model_validate(event.payload)
        await self._db.execute_many(_link_statements(payload.links, _timestamp(event)))
