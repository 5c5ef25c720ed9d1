from __future__ import annotations

import asyncio
from functools import partial
from typing import Awaitable, Callable, Generic, Hashable, TypeVar


T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Collapse concurrent calls sharing a key into one execution.

    The work runs in its own task, registered before the first await, so a
    second caller on the same event-loop turn already joins it. Every caller
    gets the shared result or exception; cancelling one caller only cancels
    that caller's wait.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Task[T]] = {}

    def in_flight(self, key: Hashable = None) -> bool:
        return key in self._inflight

    async def run(self, fn: Callable[[], Awaitable[T]], *, key: Hashable = None) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(partial(self._forget, key))
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task[T]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
