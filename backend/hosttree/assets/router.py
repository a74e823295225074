"""FastAPI routes for asset nodes: snapshot, tree, CRUD, move, repair."""

from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse

from hosttree.assets.schemas import (
    AssetListResponse,
    CreateNodeRequest,
    MoveNodeRequest,
    MoveResponse,
    PatchNodeRequest,
    RepairResponse,
    TreeResponse,
)
from hosttree.assets.service import AssetService
from hosttree.models import AssetNode
from hosttree.ordering.errors import (
    CycleError,
    InvalidParentError,
    InvalidPositionError,
    NodeNotFoundError,
    OrderingError,
    SelfReferenceError,
)
from hosttree.ordering.notifications import ChangeNotifier

router = APIRouter(prefix="/api/assets", tags=["assets"])


def get_asset_service() -> AssetService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("AssetService not initialized")


def _http_error(e: OrderingError) -> HTTPException:
    """Map a core error to an HTTPException whose detail the client can decode."""
    detail: dict[str, str | None] = {"message": str(e)}
    if isinstance(e, NodeNotFoundError):
        code, error = status.HTTP_404_NOT_FOUND, "not_found"
        detail["node_id"] = e.node_id
    elif isinstance(e, CycleError):
        code, error = status.HTTP_409_CONFLICT, "cycle"
        detail["node_id"] = e.node_id
        detail["parent_id"] = e.parent_id
    elif isinstance(e, InvalidPositionError):
        code, error = status.HTTP_400_BAD_REQUEST, "invalid_position"
    elif isinstance(e, SelfReferenceError):
        code, error = 422, "self_reference"
        detail["node_id"] = e.node_id
    elif isinstance(e, InvalidParentError):
        code, error = 422, "invalid_parent"
        detail["parent_id"] = e.parent_id
        detail["reason"] = e.reason
    else:
        code, error = 422, "validation"
    detail["error"] = error
    return HTTPException(status_code=code, detail=detail)


@router.get("")
async def list_assets(
    service: AssetService = Depends(get_asset_service),
) -> AssetListResponse:
    return await service.list_nodes()


@router.get("/tree")
async def get_tree(
    service: AssetService = Depends(get_asset_service),
) -> TreeResponse:
    return await service.get_tree()


@router.get("/events")
async def stream_events(
    service: AssetService = Depends(get_asset_service),
) -> StreamingResponse:
    """Server-sent change notices; consumers refetch when one arrives."""
    return StreamingResponse(
        _stream_changes(service.notifier),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/repair")
async def repair_links(
    service: AssetService = Depends(get_asset_service),
) -> RepairResponse:
    return await service.repair_links()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_asset(
    request: CreateNodeRequest,
    service: AssetService = Depends(get_asset_service),
) -> AssetNode:
    try:
        return await service.create_node(request)
    except OrderingError as e:
        raise _http_error(e)


@router.get("/{node_id}")
async def get_asset(
    node_id: str,
    service: AssetService = Depends(get_asset_service),
) -> AssetNode:
    try:
        return await service.get_node(node_id)
    except NodeNotFoundError as e:
        raise _http_error(e)


@router.patch("/{node_id}")
async def update_asset(
    node_id: str,
    request: PatchNodeRequest,
    service: AssetService = Depends(get_asset_service),
) -> AssetNode:
    try:
        return await service.update_node(node_id, request)
    except NodeNotFoundError as e:
        raise _http_error(e)


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(
    node_id: str,
    service: AssetService = Depends(get_asset_service),
) -> Response:
    try:
        await service.delete_node(node_id)
    except NodeNotFoundError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{node_id}/move")
async def move_asset(
    node_id: str,
    request: MoveNodeRequest,
    service: AssetService = Depends(get_asset_service),
) -> MoveResponse:
    try:
        return await service.move_node(node_id, request)
    except OrderingError as e:
        raise _http_error(e)


async def _stream_changes(notifier: ChangeNotifier) -> AsyncIterator[str]:
    """Async generator that yields SSE-formatted change notices."""
    async for notice in notifier.stream():
        yield f"event: {notice.kind}\ndata: {notice.model_dump_json()}\n\n"
