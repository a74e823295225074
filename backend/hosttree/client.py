"""HTTP client for consumers of the asset tree (tree views, scripts).

Holds no tree state between calls: every read fetches a fresh snapshot,
and a move is only reflected once the caller fetches again after the
store has accepted it.
"""

import logging
from typing import Any

import httpx

from hosttree.models import AssetNode
from hosttree.ordering.errors import (
    CycleError,
    InvalidParentError,
    InvalidPositionError,
    NodeNotFoundError,
    OrderingError,
    SelfReferenceError,
    TransportError,
    ValidationError,
)
from hosttree.ordering.gestures import plan_move, resolve_intent, would_cycle
from hosttree.ordering.moves import MoveRequest, compute_move
from hosttree.ordering.reconstruct import TreeNode, build_tree
from hosttree.ordering.repository import NodeRepository

logger = logging.getLogger(__name__)


def _error_from_response(response: httpx.Response) -> OrderingError:
    """Rebuild the core exception the store raised, or a TransportError."""
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = None
    if not isinstance(detail, dict) or "error" not in detail:
        return TransportError(
            f"{response.request.method} {response.request.url} failed: HTTP {response.status_code}",
            status_code=response.status_code,
        )

    error = detail["error"]
    message = detail.get("message", "")
    if error == "not_found":
        return NodeNotFoundError(detail.get("node_id", ""))
    if error == "cycle":
        return CycleError(detail.get("node_id", ""), detail.get("parent_id", ""))
    if error == "invalid_position":
        return InvalidPositionError(message)
    if error == "self_reference":
        return SelfReferenceError(detail.get("node_id", ""))
    if error == "invalid_parent":
        return InvalidParentError(detail.get("parent_id", ""), detail.get("reason", ""))
    return ValidationError(message)


class AssetTreeClient:
    """Async client for the /api/assets endpoints."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    @classmethod
    def connect(cls, base_url: str, timeout: float = 10.0) -> "AssetTreeClient":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        if response.is_error:
            raise _error_from_response(response)
        return response

    # -- Snapshot reads --

    async def fetch_nodes(self) -> list[AssetNode]:
        response = await self._request("GET", "/api/assets")
        return [AssetNode.model_validate(a) for a in response.json()["assets"]]

    async def fetch_snapshot(self) -> NodeRepository:
        return NodeRepository(await self.fetch_nodes())

    async def fetch_tree(self) -> list[TreeNode]:
        """Build the ordered tree locally from a fresh flat snapshot."""
        return build_tree(await self.fetch_nodes())

    # -- Store operations --

    async def create_node(
        self,
        name: str,
        kind: str,
        parent_id: str | None = None,
        **fields: Any,
    ) -> AssetNode:
        body = {"name": name, "kind": kind, "parent_id": parent_id, **fields}
        response = await self._request("POST", "/api/assets", json=body)
        return AssetNode.model_validate(response.json())

    async def update_node(self, node_id: str, **changes: Any) -> AssetNode:
        response = await self._request("PATCH", f"/api/assets/{node_id}", json=changes)
        return AssetNode.model_validate(response.json())

    async def delete_node(self, node_id: str) -> None:
        await self._request("DELETE", f"/api/assets/{node_id}")

    async def apply_move(self, node_id: str, request: MoveRequest) -> AssetNode:
        response = await self._request(
            "POST", f"/api/assets/{node_id}/move", json=request.model_dump()
        )
        return AssetNode.model_validate(response.json()["node"])

    # -- Drag and drop --

    async def drop(
        self,
        dragged_id: str,
        target_id: str,
        pointer_ratio: float,
        modifier_active: bool = False,
    ) -> AssetNode | None:
        """Drop dragged_id onto the row of target_id.

        Resolves the intent against a fresh snapshot, checks the resulting
        move locally, and submits it. Returns None if the gesture maps to
        no valid move; store rejections propagate as core exceptions.
        """
        repo = await self.fetch_snapshot()
        target = repo.get(target_id)
        if target is None or dragged_id not in repo:
            return None

        intent = resolve_intent(
            pointer_ratio,
            target.kind,
            modifier_active=modifier_active,
            would_cycle=would_cycle(repo, dragged_id, target_id),
        )
        request = plan_move(repo, dragged_id, target_id, intent)
        if request is None:
            logger.debug("Drop of %s on %s resolved to nothing (%s)", dragged_id, target_id, intent)
            return None

        compute_move(
            repo,
            dragged_id,
            request.new_parent_id,
            request.position,
            request.target_sibling_id,
        )
        return await self.apply_move(dragged_id, request)
