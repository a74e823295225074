"""Failure taxonomy for ordering and move operations."""


class OrderingError(Exception):
    """Base class for every error raised by the ordering core."""


class ValidationError(OrderingError):
    """A request refers to something that does not exist or to itself."""


class NodeNotFoundError(ValidationError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class SelfReferenceError(ValidationError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node cannot be positioned relative to itself: {node_id}")


class InvalidParentError(ValidationError):
    def __init__(self, parent_id: str, reason: str = "not a container") -> None:
        self.parent_id = parent_id
        self.reason = reason
        super().__init__(f"Invalid parent node {parent_id}: {reason}")


class CycleError(OrderingError):
    def __init__(self, node_id: str, parent_id: str) -> None:
        self.node_id = node_id
        self.parent_id = parent_id
        super().__init__(
            f"Cannot move {node_id} under {parent_id}: would nest it under itself"
        )


class InvalidPositionError(OrderingError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class TransportError(OrderingError):
    """Raised by the client when the authoritative store cannot be reached
    or answers with something other than a known domain error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
