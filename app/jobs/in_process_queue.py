"""In-process job queue backed by asyncio with a bounded worker pool.

Every job is I/O bound (AI calls, parsers, storage writes), so a handful of
asyncio workers share one queue. No external broker (Redis, Celery) needed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from app.jobs.dispatcher import JobDispatcher
from app.jobs.models import TaskToken

logger = logging.getLogger(__name__)


class InProcessQueue(JobDispatcher):
    """Local async job queue processed by `worker_count` concurrent workers."""

    def __init__(
        self,
        worker_fn: Callable[[TaskToken], Awaitable[None]],
        worker_count: int = 4,
        maxsize: int = 0,
    ):
        """
        worker_fn: async callable(token) -> None
            Drives one record to a terminal state. Must not raise for job
            failures; anything that escapes is logged and the worker moves on.
        """
        self._queue: "asyncio.Queue[TaskToken]" = asyncio.Queue(maxsize=maxsize)
        self._worker_fn = worker_fn
        self._worker_count = max(1, worker_count)
        self._tasks: List[asyncio.Task] = []
        self._running = False

    @property
    def worker_count(self) -> int:
        return self._worker_count

    async def submit(self, token: TaskToken) -> str:
        await self._queue.put(token)
        return token.record_id

    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        self._running = True
        self._tasks = [
            asyncio.create_task(self._worker_loop(i), name=f"job-worker-{i}")
            for i in range(self._worker_count)
        ]

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

    async def join(self, timeout: Optional[float] = None) -> None:
        """Wait until every queued token has been processed."""
        await asyncio.wait_for(self._queue.join(), timeout=timeout)

    async def _worker_loop(self, index: int) -> None:
        """Pull tokens one at a time and hand them to the worker function."""
        while self._running:
            try:
                token = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break

            try:
                await self._worker_fn(token)
            except asyncio.CancelledError:
                self._queue.task_done()
                raise
            except Exception:
                logger.exception(
                    "worker %d: unhandled error on %s %s", index, token.kind.value, token.record_id
                )
            self._queue.task_done()
