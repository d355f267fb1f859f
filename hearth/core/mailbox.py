"""Serialized access to the lifecycle controller.

The controller does no locking of its own: interleaving, say, stop() with an
in-flight start() could unbind a connection the other is about to bind. This
module queues operations and runs them one at a time on a single worker task.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from hearth.core.controller import LocalLifecycleController
    from hearth.core.state_machine import StateObserver
    from hearth.domain.entities import Connection, LifecycleState

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[Any]]


class OperationQueue:
    """Single-worker queue for async operations.

    Operations run strictly in submission order and never overlap. The worker
    task is created lazily on first submit, inside the running event loop.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[tuple[Operation, asyncio.Future[Any]]] | None = None
        self._worker: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        """Number of operations waiting to run."""
        return self._queue.qsize() if self._queue is not None else 0

    def _ensure_worker(self) -> asyncio.Queue[tuple[Operation, asyncio.Future[Any]]]:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._work(self._queue))
        return self._queue

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Queue an operation and wait for its result.

        Args:
            operation: Zero-argument callable returning an awaitable.

        Returns:
            Whatever the operation returns.

        Raises:
            Exception: Whatever the operation raises.
        """
        queue = self._ensure_worker()
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        queue.put_nowait((operation, future))
        return await future

    async def _work(
        self, queue: asyncio.Queue[tuple[Operation, asyncio.Future[Any]]]
    ) -> None:
        while True:
            operation, future = await queue.get()
            try:
                if future.cancelled():
                    # Caller gave up before the operation started
                    continue
                result = await operation()
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                queue.task_done()

    async def close(self) -> None:
        """Wait for queued operations to finish, then stop the worker."""
        if self._worker is None:
            return
        if self._queue is not None:
            await self._queue.join()
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None


class SerializedController:
    """Lifecycle controller front that queues state-changing operations.

    start, stop, restart, refresh, connect and the external-start wait go
    through the queue. State reads, subscriptions and cancel_wait() bypass it,
    so a running wait can be cancelled while other operations queue behind it.
    cancel_wait() has no effect on a wait that is still queued.

    Args:
        controller: The controller to serialize.
        queue: Queue to use (default: a fresh OperationQueue).
    """

    def __init__(
        self,
        controller: LocalLifecycleController,
        queue: OperationQueue | None = None,
    ) -> None:
        self.controller = controller
        self._queue = queue or OperationQueue()

    async def start(self) -> bool:
        return await self._queue.submit(self.controller.start)

    async def stop(self) -> bool:
        return await self._queue.submit(self.controller.stop)

    async def restart(self) -> bool:
        return await self._queue.submit(self.controller.restart)

    async def refresh(self) -> bool:
        return await self._queue.submit(self.controller.refresh)

    async def connect(self, address: str) -> bool:
        return await self._queue.submit(lambda: self.controller.connect(address))

    async def wait_for_externally_managed_start(self, **kwargs: float) -> bool:
        return await self._queue.submit(
            lambda: self.controller.wait_for_externally_managed_start(**kwargs)
        )

    def cancel_wait(self) -> bool:
        return self.controller.cancel_wait()

    def current(self) -> LifecycleState:
        return self.controller.current()

    def bound_connection(self) -> Connection | None:
        return self.controller.bound_connection()

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        return self.controller.subscribe(observer)

    def status(self) -> dict[str, Any]:
        return self.controller.status()

    async def close(self) -> None:
        await self._queue.close()
