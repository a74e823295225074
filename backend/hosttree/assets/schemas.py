"""Request and response schemas for asset endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from hosttree.models import AssetNode, LinkUpdate, NodeKind
from hosttree.ordering.reconstruct import ChainAnomaly, TreeNode

# -- Requests --


class CreateNodeRequest(BaseModel):
    name: str = Field(min_length=1)
    kind: NodeKind
    description: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    parent_id: str | None = None


class PatchNodeRequest(BaseModel):
    """Fields to update on a node. Only fields present in the request body are changed."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    config: dict[str, Any] | None = None
    tags: list[str] | None = None


class MoveNodeRequest(BaseModel):
    """Request body for POST /api/assets/{node_id}/move.

    position is validated by the move engine, not here, so a bad value
    surfaces as an InvalidPositionError rather than a schema error.
    """

    new_parent_id: str | None = None
    position: str = "append"
    target_sibling_id: str | None = None


# -- Responses --


class AssetListResponse(BaseModel):
    assets: list[AssetNode]
    total: int


class TreeResponse(BaseModel):
    roots: list[TreeNode]
    total: int
    anomalies: list[ChainAnomaly] = Field(default_factory=list)


class MoveResponse(BaseModel):
    node: AssetNode
    updates: list[LinkUpdate]


class RepairResponse(BaseModel):
    updates: list[LinkUpdate]
