"""Tests for the per-connection worker pool."""

import asyncio

import pytest

from rocketchat_realtime.worker_pool import MessageWorkerPool


class TestMessageWorkerPool:
    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            MessageWorkerPool(0)

    @pytest.mark.asyncio
    async def test_runs_submitted_work(self):
        pool = MessageWorkerPool(2)
        seen = []

        async def work(x):
            seen.append(x)

        tasks = [pool.submit(work, i) for i in range(5)]
        await asyncio.gather(*tasks)
        assert sorted(seen) == [0, 1, 2, 3, 4]
        assert pool.pending == 0

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        pool = MessageWorkerPool(2)
        running = 0
        peak = 0
        release = asyncio.Event()

        async def work():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await release.wait()
            running -= 1

        tasks = [pool.submit(work) for _ in range(6)]
        for _ in range(10):
            await asyncio.sleep(0)
        assert running == 2

        release.set()
        await asyncio.gather(*tasks)
        assert peak == 2

    @pytest.mark.asyncio
    async def test_handler_errors_are_contained(self, caplog):
        pool = MessageWorkerPool(1)

        async def boom():
            raise RuntimeError("bad frame")

        await pool.submit(boom)
        assert "Message handler failed" in caplog.text

    @pytest.mark.asyncio
    async def test_shutdown_now_cancels_without_waiting(self):
        pool = MessageWorkerPool(1)
        never = asyncio.Event()

        async def block():
            await never.wait()

        tasks = [pool.submit(block) for _ in range(3)]
        await asyncio.sleep(0)
        assert pool.shutdown_now() == 3
        assert pool.is_shutdown is True
        assert pool.pending == 0

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, asyncio.CancelledError) for r in results)

    @pytest.mark.asyncio
    async def test_submit_after_shutdown(self):
        pool = MessageWorkerPool(1)
        pool.shutdown_now()

        async def work():
            pass

        assert pool.submit(work) is None
