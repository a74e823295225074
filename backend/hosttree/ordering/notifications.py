"""Change notification: the store announces every accepted mutation.

Consumers subscribe and refetch a snapshot when told; nothing here carries
tree state, only which nodes changed.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Notices a stream may hold before the oldest is dropped.
STREAM_BUFFER = 256

ChangeKind = Literal["created", "updated", "moved", "deleted", "repaired"]


class ChangeNotice(BaseModel):
    kind: ChangeKind
    node_ids: list[str] = Field(default_factory=list)
    sequence_num: int | None = None


Listener = Callable[[ChangeNotice], None]


class ChangeNotifier:
    """In-process fan-out of ChangeNotices to listeners and async streams."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._queues: set[asyncio.Queue[ChangeNotice]] = set()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, notice: ChangeNotice) -> None:
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                # One broken subscriber must not block the others.
                logger.exception("Change listener failed for %s", notice.kind)
        for queue in self._queues:
            if queue.full():
                dropped = queue.get_nowait()
                logger.warning(
                    "Change stream full, dropping %s notice (seq %s)",
                    dropped.kind,
                    dropped.sequence_num,
                )
            queue.put_nowait(notice)

    async def stream(self) -> AsyncIterator[ChangeNotice]:
        """Yield every notice published after the generator starts.

        A reader that falls STREAM_BUFFER notices behind loses the oldest.
        """
        queue: asyncio.Queue[ChangeNotice] = asyncio.Queue(maxsize=STREAM_BUFFER)
        self._queues.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners) + len(self._queues)
