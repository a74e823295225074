"""Ordered hierarchy core: repository, order reconstruction, moves, gestures."""

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
from hosttree.ordering.gestures import plan_move, plan_root_drop, resolve_intent
from hosttree.ordering.moves import MovePlan, MoveRequest, compute_move
from hosttree.ordering.notifications import ChangeNotice, ChangeNotifier
from hosttree.ordering.reconstruct import (
    ChainAnomaly,
    TreeNode,
    build_tree,
    chain_anomalies,
    reconstruct,
)
from hosttree.ordering.repository import NodeRepository

__all__ = [
    "ChainAnomaly",
    "ChangeNotice",
    "ChangeNotifier",
    "CycleError",
    "InvalidParentError",
    "InvalidPositionError",
    "MovePlan",
    "MoveRequest",
    "NodeNotFoundError",
    "NodeRepository",
    "OrderingError",
    "SelfReferenceError",
    "TransportError",
    "TreeNode",
    "ValidationError",
    "build_tree",
    "chain_anomalies",
    "compute_move",
    "plan_move",
    "plan_root_drop",
    "reconstruct",
    "resolve_intent",
]
