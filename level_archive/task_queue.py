"""
Serialized task queue for platform file writes.

Runs asynchronous jobs strictly one at a time, in the order they were
enqueued. A job that fails only fails its own future, the queue keeps
draining. The queue knows nothing about games or platform files.
"""

import asyncio
import itertools
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from level_archive.logger import setup_logger

logger = setup_logger()

Job = Callable[[], Awaitable[Any]]


@dataclass
class _QueuedJob:
    """Internal representation of an enqueued job."""
    job: Job
    future: asyncio.Future
    name: str


class SerializedTaskQueue:
    """
    FIFO asyncio job runner with at most one job in flight.

    A drain task is started on the running loop when a job is enqueued on
    an idle queue and exits once the queue is empty.

    Usage:
        queue = SerializedTaskQueue()
        first = queue.enqueue(lambda: write_file(a))
        second = queue.enqueue(lambda: write_file(b))
        # second only starts after first has finished
        await asyncio.gather(first, second)
    """

    def __init__(self):
        self._jobs: deque[_QueuedJob] = deque()
        self._drain_task: asyncio.Task | None = None
        self._current: _QueuedJob | None = None
        self._counter = itertools.count(1)

    @property
    def pending(self) -> int:
        """Number of jobs waiting or running."""
        return len(self._jobs) + (1 if self._current is not None else 0)

    def enqueue(self, job: Job, name: str = "") -> asyncio.Future:
        """
        Add a job to the end of the queue.

        Must be called from a running event loop.

        Args:
            job: Zero-argument callable returning an awaitable
            name: Optional name for logging

        Returns:
            Future resolved with the job's result (or its exception) once
            the job has run to completion
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        queued = _QueuedJob(job=job, future=future, name=name or f"job-{next(self._counter)}")
        self._jobs.append(queued)
        logger.debug(f"Queued '{queued.name}' ({len(self._jobs)} waiting)")

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain(), name="serialized-task-queue")
        return future

    async def join(self) -> None:
        """Wait until every job enqueued so far has completed."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    async def _drain(self) -> None:
        while self._jobs:
            queued = self._jobs.popleft()
            self._current = queued
            logger.debug(f"Running '{queued.name}'")
            try:
                result = await queued.job()
            except asyncio.CancelledError:
                if not queued.future.done():
                    queued.future.cancel()
                raise
            except Exception as e:
                logger.debug(f"'{queued.name}' failed: {e}")
                if not queued.future.done():
                    queued.future.set_exception(e)
            else:
                if not queued.future.done():
                    queued.future.set_result(result)
            finally:
                self._current = None
