"""
HotReload Serial Task Queue.

Runs asynchronous actions one at a time, in submission order.
Requires Python 3.11+.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from utils.logger import LoggerMixin

T = TypeVar("T")


class SerialTaskQueue(LoggerMixin):
    """
    FIFO execution lane for actions that mutate shared host state.

    Each action starts only once the previously enqueued action has
    settled, whether it succeeded or failed. A failing action resolves
    its own task with the exception and the lane moves on.
    """

    def __init__(self, name: str = "tasks") -> None:
        """
        Initialize the queue.

        Args:
            name: Label used in log entries
        """
        self._name = name
        self._tail: asyncio.Task[Any] | None = None
        self._submitted = 0
        self._completed = 0

    def enqueue(self, action: Callable[[], Awaitable[T] | T]) -> asyncio.Task[T]:
        """
        Chain an action after everything already enqueued.

        Must be called from a running event loop.

        Args:
            action: Zero-argument callable, sync or async

        Returns:
            Task resolving to the action's result (or its exception)
        """
        previous = self._tail
        task = asyncio.ensure_future(self._run_after(previous, action))
        task.add_done_callback(self._on_done)
        self._tail = task
        self._submitted += 1
        return task

    async def _run_after(
        self,
        previous: asyncio.Task[Any] | None,
        action: Callable[[], Awaitable[T] | T],
    ) -> T:
        if previous is not None and not previous.done():
            # wait() never raises the awaited task's exception
            await asyncio.wait([previous])

        result = action()
        if inspect.isawaitable(result):
            result = await result
        return result

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._completed += 1
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.log.error(
                "queued_task_failed",
                queue=self._name,
                error=str(error),
                exc_info=error,
            )

    async def join(self) -> None:
        """Wait until every action enqueued so far (and any they enqueue) has settled."""
        while self._tail is not None and not self._tail.done():
            await asyncio.wait([self._tail])

    @property
    def pending_count(self) -> int:
        """Number of enqueued actions that have not settled yet."""
        return self._submitted - self._completed

    @property
    def is_idle(self) -> bool:
        """Check if no action is running or waiting."""
        return self.pending_count == 0
