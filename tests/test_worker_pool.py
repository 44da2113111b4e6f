import asyncio

import pytest

from signalframe.errors import InsufficientContentError
from signalframe.tools.worker_pool import WorkerPool


class TestWorkerPool:
    def test_all_jobs_complete(self):
        async def handler(job):
            await asyncio.sleep(0)
            return job * 2

        pool = WorkerPool(handler, min_concurrency=2, max_concurrency=4)
        results = asyncio.run(pool.run(range(10)))
        assert results == {i: i * 2 for i in range(10)}

    def test_concurrency_never_exceeds_max(self):
        state = {"current": 0, "peak": 0}

        async def handler(job):
            state["current"] += 1
            state["peak"] = max(state["peak"], state["current"])
            await asyncio.sleep(0.01)
            state["current"] -= 1
            return job

        pool = WorkerPool(handler, min_concurrency=2, max_concurrency=5)
        results = asyncio.run(pool.run(range(40)))
        assert len(results) == 40
        assert state["peak"] <= 5
        assert pool.peak_workers <= 5
        assert pool.peak_in_flight <= 5

    def test_grows_past_min_under_backlog(self):
        async def handler(job):
            await asyncio.sleep(0.01)
            return job

        pool = WorkerPool(handler, min_concurrency=1, max_concurrency=6)
        asyncio.run(pool.run(range(30)))
        assert pool.peak_workers > 1

    def test_retries_exactly_once(self):
        calls = {}

        async def handler(job):
            calls[job] = calls.get(job, 0) + 1
            raise RuntimeError("boom")

        pool = WorkerPool(handler, min_concurrency=1, max_concurrency=2, max_retries=1)
        results = asyncio.run(pool.run(["a", "b"]))
        assert results == {}
        assert calls == {"a": 2, "b": 2}
        assert isinstance(pool.failures["a"], RuntimeError)

    def test_second_attempt_can_succeed(self):
        calls = {}

        async def handler(job):
            calls[job] = calls.get(job, 0) + 1
            if calls[job] == 1:
                raise RuntimeError("flaky")
            return "ok"

        pool = WorkerPool(handler, max_retries=1)
        assert asyncio.run(pool.run(["a"])) == {"a": "ok"}
        assert pool.attempts["a"] == 2

    def test_per_attempt_timeout(self):
        async def handler(job):
            await asyncio.sleep(5)

        pool = WorkerPool(handler, timeout=0.05, max_retries=1)
        results = asyncio.run(pool.run(["slow"]))
        assert results == {}
        assert pool.attempts["slow"] == 2
        assert isinstance(pool.failures["slow"], asyncio.TimeoutError)

    def test_no_retry_errors_are_final(self):
        calls = {"n": 0}

        async def handler(job):
            calls["n"] += 1
            raise InsufficientContentError(job, "too short")

        pool = WorkerPool(handler, max_retries=1, no_retry=(InsufficientContentError,))
        assert asyncio.run(pool.run(["thin"])) == {}
        assert calls["n"] == 1

    def test_one_failure_does_not_affect_others(self):
        async def handler(job):
            if job == "bad":
                raise RuntimeError("nope")
            return job.upper()

        pool = WorkerPool(handler)
        results = asyncio.run(pool.run(["a", "bad", "c"]))
        assert results == {"a": "A", "c": "C"}

    def test_empty_jobs(self):
        async def handler(job):
            return job

        assert asyncio.run(WorkerPool(handler).run([])) == {}

    def test_cancellation_unwinds_workers(self):
        state = {"started": 0, "cleaned": 0}

        async def handler(job):
            state["started"] += 1
            try:
                await asyncio.sleep(10)
            finally:
                state["cleaned"] += 1

        async def scenario():
            pool = WorkerPool(handler, min_concurrency=3, max_concurrency=3, timeout=None)
            task = asyncio.create_task(pool.run(range(10)))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return pool

        pool = asyncio.run(scenario())
        assert state["started"] == 3
        assert state["cleaned"] == 3
        assert pool.in_flight == 0

    def test_invalid_bounds(self):
        async def handler(job):
            return job

        with pytest.raises(ValueError):
            WorkerPool(handler, max_concurrency=0)
