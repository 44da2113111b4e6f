"""
Bounded async worker pool with per-task timeout and retry.

Scaling model: the pool starts min_concurrency workers. Whenever a worker picks
up a job while more jobs are still queued, it spawns another worker, up to
max_concurrency. Workers exit as soon as the queue is empty, so the pool
shrinks on its own when work runs out. At most max_concurrency jobs are ever
in flight.

Each job gets `timeout` seconds per attempt and `max_retries` extra attempts.
A job that exhausts its attempts is logged and dropped. It never fails the
batch. Results come back as {job: result} for the jobs that succeeded.

Cancelling run() cancels every worker and waits for them to unwind, so
resources held inside a job (e.g. a browser page) get released in their own
finally blocks.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkerPool:
    """Bounded pool where the worker count itself is the concurrency limit.

    no_retry: exception types that are final outcomes (e.g. "page has no
    article text"); they are recorded as failures without a second attempt.
    """

    def __init__(
        self,
        handler: Callable[[Hashable], Awaitable[T]],
        min_concurrency: int = 5,
        max_concurrency: int = 15,
        timeout: Optional[float] = 20.0,
        max_retries: int = 1,
        no_retry: tuple = (),
        name: str = "pool",
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.handler = handler
        self.max_concurrency = max_concurrency
        self.min_concurrency = max(1, min(min_concurrency, max_concurrency))
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.no_retry = no_retry
        self.name = name

        # Observability (single event loop, no locking needed)
        self.active_workers = 0
        self.peak_workers = 0
        self.in_flight = 0
        self.peak_in_flight = 0
        self.attempts: Dict[Hashable, int] = {}
        self.failures: Dict[Hashable, BaseException] = {}

    async def _attempt(self, job: Hashable) -> T:
        if self.timeout is None:
            return await self.handler(job)
        return await asyncio.wait_for(self.handler(job), timeout=self.timeout)

    async def run_job(self, job: Hashable) -> Optional[T]:
        """Run one job with timeout + retry. Returns None when every attempt failed."""
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_retries + 2):
            self.attempts[job] = attempt
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await self._attempt(job)
            except asyncio.CancelledError:
                raise
            except self.no_retry as e:
                last_error = e
                break
            except asyncio.TimeoutError as e:
                last_error = e
                logger.debug(f"[{self.name}] attempt {attempt} timed out after {self.timeout}s: {job}")
            except Exception as e:
                last_error = e
                logger.debug(f"[{self.name}] attempt {attempt} failed for {job}: {e}")
            finally:
                self.in_flight -= 1

        self.failures[job] = last_error
        return None

    async def run(self, jobs: Iterable[Hashable]) -> Dict[Hashable, T]:
        queue: asyncio.Queue = asyncio.Queue()
        for job in jobs:
            queue.put_nowait(job)
        if queue.empty():
            return {}

        results: Dict[Hashable, T] = {}
        workers: List[asyncio.Task] = []

        def _spawn():
            self.active_workers += 1
            self.peak_workers = max(self.peak_workers, self.active_workers)
            workers.append(asyncio.create_task(_worker()))

        async def _worker():
            try:
                while True:
                    try:
                        job = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    # Backlog left behind us: grow toward max
                    if not queue.empty() and self.active_workers < self.max_concurrency:
                        _spawn()
                    result = await self.run_job(job)
                    if result is not None:
                        results[job] = result
            finally:
                self.active_workers -= 1

        for _ in range(min(self.min_concurrency, queue.qsize())):
            _spawn()

        try:
            # Workers may spawn more workers while we wait
            done = 0
            while done < len(workers):
                await workers[done]
                done += 1
        except asyncio.CancelledError:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

        return results
