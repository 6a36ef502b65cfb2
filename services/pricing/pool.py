"""Bounded worker pool shared by vendor fetches and background writes."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from core.config import WorkerPoolSettings

logger = get_logger(__name__)

type Job = Callable[[], Awaitable[None]]


class WorkerPool:
    """
    Process-lifetime pool of asyncio workers.

    Two kinds of work share it:

    * Vendor fetches take one of ``max_workers`` slots through
      :meth:`slot`; a fetch beyond that waits for a free slot.
    * Fire-and-forget jobs (snapshot and history writes) go through
      :meth:`submit` into a queue of ``queue_capacity`` drained by
      ``min_workers`` background consumers. Delivery is at-most-once.
      When the queue is full, or the pool is not running, the job runs
      inline in the submitting coroutine instead of being rejected.

    Example:
        >>> pool = WorkerPool(min_workers=2, max_workers=4, queue_capacity=10)
        >>> await pool.start()
        >>> await pool.submit(write_snapshot, name="snapshot")
        >>> await pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 10,
        max_workers: int = 40,
        queue_capacity: int = 200,
        shutdown_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the pool. Nothing runs until :meth:`start`.

        Args:
            min_workers: Number of background job consumers.
            max_workers: Number of concurrent fetch slots.
            queue_capacity: Maximum number of pending background jobs.
            shutdown_timeout: Seconds to wait for queued jobs on shutdown.

        Raises:
            ValueError: If the sizes are not positive or max < min.
        """
        if min_workers < 1 or max_workers < 1 or queue_capacity < 1:
            msg = "pool sizes must be positive"
            raise ValueError(msg)
        if max_workers < min_workers:
            msg = "max_workers cannot be lower than min_workers"
            raise ValueError(msg)

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_capacity = queue_capacity
        self.shutdown_timeout = shutdown_timeout

        self._slots = asyncio.Semaphore(max_workers)
        self._queue: asyncio.Queue[tuple[str, Job]] | None = None
        self._workers: list[asyncio.Task[None]] = []

    @classmethod
    def from_settings(cls, settings: WorkerPoolSettings) -> WorkerPool:
        """Build a pool from configuration."""
        return cls(
            min_workers=settings.min_workers,
            max_workers=settings.max_workers,
            queue_capacity=settings.queue_capacity,
            shutdown_timeout=settings.shutdown_timeout,
        )

    @property
    def is_running(self) -> bool:
        """Return True while background consumers are alive."""
        return bool(self._workers)

    @property
    def pending(self) -> int:
        """Return the number of queued background jobs."""
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Start the background consumers. Idempotent."""
        if self.is_running:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_capacity)
        self._workers = [
            asyncio.create_task(self._consume(self._queue), name=f"pricing-worker-{i}")
            for i in range(self.min_workers)
        ]
        logger.info(
            "Worker pool started",
            min_workers=self.min_workers,
            max_workers=self.max_workers,
            queue_capacity=self.queue_capacity,
        )

    @contextlib.asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one of the ``max_workers`` fetch slots."""
        async with self._slots:
            yield

    async def submit(self, job: Job, *, name: str = "job") -> bool:
        """
        Schedule a fire-and-forget job.

        Args:
            job: Zero-argument coroutine function to run.
            name: Label used in log events.

        Returns:
            True if the job was queued, False if it ran inline because
            the pool was saturated or not running.
        """
        if self._queue is not None and self.is_running:
            try:
                self._queue.put_nowait((name, job))
            except asyncio.QueueFull:
                logger.warning(
                    "Worker queue full, running job in caller",
                    job=name,
                    queue_capacity=self.queue_capacity,
                )
            else:
                return True

        await self._run_job(name, job)
        return False

    async def drain(self) -> None:
        """Wait until every queued job has finished."""
        if self._queue is not None and self.is_running:
            await self._queue.join()

    async def shutdown(self) -> None:
        """Finish queued jobs (up to ``shutdown_timeout``) and stop consumers."""
        if not self.is_running:
            return
        try:
            await asyncio.wait_for(self.drain(), timeout=self.shutdown_timeout)
        except TimeoutError:
            logger.warning(
                "Worker pool shutdown timed out, dropping queued jobs",
                dropped=self.pending,
            )

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info("Worker pool stopped")

    async def _consume(self, queue: asyncio.Queue[tuple[str, Job]]) -> None:
        """Run queued jobs until cancelled."""
        while True:
            name, job = await queue.get()
            try:
                await self._run_job(name, job)
            finally:
                queue.task_done()

    async def _run_job(self, name: str, job: Job) -> None:
        """Run one job, logging instead of propagating its failure."""
        try:
            await job()
        except Exception as e:
            logger.error(
                "Background job failed",
                job=name,
                error=str(e),
                error_type=type(e).__name__,
            )
