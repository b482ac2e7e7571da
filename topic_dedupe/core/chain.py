from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

type Operation = Callable[[], Awaitable[Any]]


class OperationChain:
    """
    Single-worker FIFO executor for one topic.

    Submitted operations run strictly one at a time in submission order. The
    worker task only exists while there is queued or running work, so an idle
    chain holds no task.

    Every submitted operation runs to completion even when its result future
    was cancelled by whoever awaited it; there is no way to abandon work once
    it is queued. A failing operation stores its exception on its own future
    and the worker moves on to the next one.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._queue: deque[tuple[Operation, asyncio.Future[Any]]] = deque()
        self._worker: asyncio.Task[None] | None = None

    @property
    def busy(self) -> bool:
        """True while an operation is running or queued."""
        return self._worker is not None

    @property
    def queued(self) -> int:
        """Operations waiting behind the one currently running."""
        return len(self._queue)

    def submit(self, operation: Operation) -> asyncio.Future[Any]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self._queue.append((operation, future))
        if self._worker is None:
            self._worker = loop.create_task(self._run(), name=f"topic-dedupe:{self.name}")
        return future

    async def join(self) -> None:
        """Wait until the chain has nothing running or queued."""
        while self._worker is not None:
            await asyncio.wait({self._worker})

    async def _run(self) -> None:
        try:
            while self._queue:
                operation, future = self._queue.popleft()
                try:
                    result = await operation()
                except asyncio.CancelledError:
                    if not future.done():
                        future.cancel()
                    worker = asyncio.current_task()
                    if worker is not None and worker.cancelling():
                        raise
                    # Raised by the operation itself: the rest of the queue still runs.
                except Exception as exc:
                    if not future.done():
                        future.set_exception(exc)
                else:
                    if not future.done():
                        future.set_result(result)
        except asyncio.CancelledError:
            # Worker torn down with the loop; nothing queued will ever run.
            while self._queue:
                _, future = self._queue.popleft()
                future.cancel()
            raise
        finally:
            self._worker = None
