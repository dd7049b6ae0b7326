"""
背景 worker 測試
"""

import asyncio

import pytest

from music_service.core.worker import CacheWorker


async def test_jobs_run_in_submission_order():
    worker = CacheWorker()
    order = []

    def job(n):
        async def run():
            await asyncio.sleep(0)
            order.append(n)
            return n
        return run

    futures = [worker.submit(job(i), name=f"job{i}") for i in range(5)]
    results = await asyncio.gather(*futures)

    assert results == [0, 1, 2, 3, 4]
    assert order == [0, 1, 2, 3, 4]
    await worker.close()


async def test_failed_job_does_not_stop_worker():
    worker = CacheWorker()

    async def boom():
        raise RuntimeError("boom")

    async def ok():
        return "ok"

    failed = worker.submit(boom)
    passed = worker.submit(ok)

    with pytest.raises(RuntimeError):
        await failed
    assert await passed == "ok"
    await worker.close()


async def test_close_drops_pending_jobs():
    worker = CacheWorker()
    gate = asyncio.Event()
    started = asyncio.Event()

    async def blocked():
        started.set()
        await gate.wait()

    async def never():
        return "never"

    first = worker.submit(blocked)
    second = worker.submit(never)
    await started.wait()

    dropped = await worker.close()

    assert dropped == 1
    assert first.cancelled()
    assert second.cancelled()
    assert not worker.is_running


async def test_submit_after_close_raises():
    worker = CacheWorker()
    await worker.close()

    async def job():
        return None

    with pytest.raises(RuntimeError):
        worker.submit(job)
