from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Collapse concurrent calls into one execution shared by every caller.

    The first caller runs ``fn``; callers arriving while it is in flight block
    until it finishes and get the same result or the same exception.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._inflight: Future[T] | None = None

    def do(self, fn: Callable[[], T]) -> T:
        with self._lock:
            future = self._inflight
            leader = future is None
            if future is None:
                future = self._inflight = Future()

        if not leader:
            return future.result()

        try:
            result = fn()
        except BaseException as error:
            future.set_exception(error)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._inflight = None


class AsyncSingleFlight(Generic[T]):
    """asyncio counterpart of :class:`SingleFlight`.

    The shared task is shielded, so a waiter being cancelled does not cancel
    the operation for the others.
    """

    def __init__(self) -> None:
        self._inflight: asyncio.Task[T] | None = None

    async def do(self, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight = task
            task.add_done_callback(self._clear)
        try:
            return await asyncio.shield(task)
        finally:
            if task.done():
                self._clear(task)

    def _clear(self, task: asyncio.Task[T]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the exception as retrieved when every waiter was cancelled.
            task.exception()
