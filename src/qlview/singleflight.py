"""Single-flight deduplication of concurrent async work.

When several coroutines miss the cache for the same key at once, only the
first one starts the fetch; the rest await the same in-flight task. The
key is released as soon as that task finishes, success or failure, so the
next miss starts a fresh fetch.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class SingleFlight:
    """Share one in-flight task per key between concurrent callers."""

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        """Whether a task for *key* is currently running."""
        return key in self._inflight

    async def do(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``fn()`` for *key*, or join the run already in progress.

        Every caller gets the same result, or the same exception.
        Cancelling one waiter does not cancel the shared task.
        """
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
