"""
Background task tracking.

Collaborator calls run as fire-and-forget asyncio tasks. The tracker keeps a
strong reference to each one, logs crashes instead of losing them, and lets
the host wait until everything in flight has settled.
"""

import asyncio
import logging
from typing import Coroutine, Optional

logger = logging.getLogger(__name__)


class TaskTracker:
    """Owns the background tasks of one studio."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Schedule ``coro`` on the running loop and track it."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} crashed", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until no tracked task is running, including tasks spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
