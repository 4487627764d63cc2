"""
Mealwise - Detached Operations.

Bookkeeping that must never fail or block a request (usage counters,
feedback counters) runs as a detached asyncio task. Failures are logged
with the task label and dropped.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Owns detached tasks until they finish."""

    def __init__(self):
        # Strong references; the event loop only keeps weak ones
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def detach(self, coro: Coroutine[Any, Any, Any], label: str) -> asyncio.Task:
        """Schedule coro on the running loop without awaiting it."""
        task = asyncio.create_task(self._run(coro, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], label: str) -> None:
        try:
            await coro
        except Exception as e:
            logger.warning(f"Background task '{label}' failed: {e}")

    async def drain(self) -> None:
        """Wait for every outstanding task, including ones scheduled meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
