"""
Single-flight guard: at most one in-flight call per key.

A caller arriving while a call for the same key is running awaits that call
and receives its result or its exception instead of starting a second one.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class SingleFlight:
    def __init__(self):
        self._calls: Dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._calls

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run ``fn`` for ``key`` unless a call for ``key`` is already running.

        Cancelling one waiter does not cancel the shared call; use
        ``cancel_all`` for that.
        """
        task = self._calls.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._calls[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug(f"Joining in-flight call for {key!r}")
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._calls.get(key) is task:
            del self._calls[key]
        # Mark the outcome retrieved; every waiter already received it.
        if not task.cancelled():
            task.exception()

    async def cancel_all(self) -> None:
        """Cancel every in-flight call and wait for them to finish."""
        tasks = list(self._calls.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._calls.clear()
