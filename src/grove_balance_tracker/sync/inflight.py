"""Per-key de-duplication of concurrent fetches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class InFlightRequests:
    """
    Tracks fetches currently running, one task per key.

    A caller asking for a key that is already being fetched awaits the
    running task instead of starting a second one. Waiters are shielded, so
    cancelling one waiter leaves the shared fetch running for the others.

    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run ``factory`` for ``key`` unless a fetch for that key is in flight.

        Parameters
        ----------
        key : str
            De-duplication key (the cache key)
        factory : Callable[[], Awaitable[Any]]
            Creates the awaitable performing the fetch

        Returns
        -------
        Any
            Result of the shared fetch

        """
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._discard(k, t))
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    def _discard(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Retrieve the outcome so an unobserved failure is not reported twice
        if not task.cancelled():
            task.exception()

    async def wait_all(self) -> None:
        """Wait for every running fetch to settle, ignoring their outcomes."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
