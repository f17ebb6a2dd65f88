"""Fire-and-forget task spawning for per-item fetches."""

import asyncio
from typing import Coroutine, Optional


class TaskSpawner:
    """Spawns one asyncio task per job, optionally capping how many run at once.

    Holds strong references to running tasks so they are not garbage collected
    mid-flight. ``max_concurrency=None`` (or 0) means no cap.
    """

    def __init__(self, max_concurrency: Optional[int] = None):
        self.max_concurrency = max_concurrency or None
        self._semaphore = (
            asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        )
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        if self._semaphore is not None:
            coro = self._limited(coro)
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _limited(self, coro: Coroutine):
        try:
            async with self._semaphore:
                return await coro
        finally:
            # no-op if it ran; avoids "never awaited" if cancelled while queued
            coro.close()

    @property
    def running(self) -> int:
        return len(self._tasks)

    async def join(self):
        """Wait until every spawned task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self):
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
