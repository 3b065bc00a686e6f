"""Bounded per-observer status queues."""

import asyncio
from collections.abc import Callable

from loguru import logger

from deploy_engine.models import DeploymentStatusUpdate


class StatusSubscription:
    """Async iterator over status updates for one observer.

    The queue is bounded; when it is full the oldest update is dropped so a
    slow observer never blocks the monitor.
    """

    def __init__(self, maxsize: int, on_close: Callable[["StatusSubscription"], None] | None = None):
        self._queue: asyncio.Queue[DeploymentStatusUpdate | None] = asyncio.Queue(maxsize=maxsize)
        self._on_close = on_close
        self.closed = False
        self.dropped = 0

    def offer(self, update: DeploymentStatusUpdate | None) -> None:
        """Enqueue without waiting, evicting the oldest update when full."""
        if self.closed and update is not None:
            return
        while True:
            try:
                self._queue.put_nowait(update)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()
                self.dropped += 1
                logger.trace(f"Status subscriber queue full, dropped oldest update ({self.dropped} total)")

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.offer(None)
        if self._on_close:
            self._on_close(self)

    def __aiter__(self) -> "StatusSubscription":
        return self

    async def __anext__(self) -> DeploymentStatusUpdate:
        update = await self._queue.get()
        if update is None:
            raise StopAsyncIteration
        return update

    async def __aenter__(self) -> "StatusSubscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
