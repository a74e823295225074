"""Canonical data structures and event types for hosttree.

Defined once here, referenced everywhere else. AssetNode is the record the
ordering core works on; event payloads represent the type-specific content
of each event, and the EventEnvelope wraps them with metadata.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

NodeKind = Literal["folder", "local", "ssh", "docker_host"]

# Kinds that may hold child nodes. Everything else is a leaf.
CONTAINER_KINDS: frozenset[str] = frozenset({"folder", "docker_host"})


def is_container_kind(kind: str) -> bool:
    return kind in CONTAINER_KINDS


def _empty_to_none(value: str | None) -> str | None:
    """Storage may hand back "" for a missing reference; "" is never an id."""
    if value == "":
        return None
    return value


# ---------------------------------------------------------------------------
# Canonical data structures
# ---------------------------------------------------------------------------


class AssetNode(BaseModel):
    """One addressable item in the hierarchy.

    parent_id / prev_id / next_id are optional references: None means
    "no node" (root for parent_id, chain end for prev/next).
    """

    node_id: str
    name: str
    kind: NodeKind
    description: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    parent_id: str | None = None
    prev_id: str | None = None
    next_id: str | None = None
    created_at: str
    updated_at: str | None = None

    @field_validator("parent_id", "prev_id", "next_id", mode="before")
    @classmethod
    def normalize_refs(cls, value: str | None) -> str | None:
        return _empty_to_none(value)

    @property
    def is_container(self) -> bool:
        return is_container_kind(self.kind)

    def sort_key(self) -> tuple[str, str, str]:
        """Stable secondary key: creation time, then name (case-insensitive)."""
        return (self.created_at, self.name.casefold(), self.node_id)

    def links(self) -> "LinkUpdate":
        return LinkUpdate(
            node_id=self.node_id,
            parent_id=self.parent_id,
            prev_id=self.prev_id,
            next_id=self.next_id,
        )


class LinkUpdate(BaseModel):
    """The complete new (parent, prev, next) triple for one node."""

    node_id: str
    parent_id: str | None = None
    prev_id: str | None = None
    next_id: str | None = None


# ---------------------------------------------------------------------------
# Event payloads, one per event type
# ---------------------------------------------------------------------------


class NodeCreatedPayload(BaseModel):
    node_id: str
    name: str
    kind: NodeKind
    description: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    parent_id: str | None = None
    # Link triples for the new node and the former tail it was appended after
    links: list[LinkUpdate] = Field(default_factory=list)


class NodeUpdatedPayload(BaseModel):
    node_id: str
    changes: dict[str, Any]
    previous: dict[str, Any] = Field(default_factory=dict)


class NodeMovedPayload(BaseModel):
    node_id: str
    new_parent_id: str | None = None
    position: Literal["append", "before", "after"]
    reference_id: str | None = None
    links: list[LinkUpdate]


class NodeDeletedPayload(BaseModel):
    node_id: str
    deleted_node_ids: list[str]
    links: list[LinkUpdate] = Field(default_factory=list)


class LinksRepairedPayload(BaseModel):
    links: list[LinkUpdate]


# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class EventEnvelope(BaseModel):
    """Wraps every event with metadata. Stored in the events table."""

    event_id: str
    node_id: str | None = None  # primary subject; None for store-wide events
    timestamp: datetime
    device_id: str = "local"
    user_id: str | None = None
    event_type: str
    payload: dict[str, Any]
    sequence_num: int | None = None  # assigned by DB on insert
