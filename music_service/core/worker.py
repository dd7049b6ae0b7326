"""
背景工作佇列

單一 asyncio 任務依序執行所有工作：
- 同一時間只有一個下載在進行
- 執行順序 = 提交順序
- 關閉時丟棄尚未執行的工作
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Tuple
from loguru import logger

Job = Callable[[], Awaitable[Any]]


class CacheWorker:
    """
    單線程、嚴格依序的背景工作佇列

    使用方式：
        worker = CacheWorker()
        future = worker.submit(lambda: cache.cache_one(track), name="cache_one")
        result = await future
        await worker.close()
    """

    def __init__(self, name: str = "cache-worker"):
        self.name = name
        self._queue: "asyncio.Queue[Tuple[str, Job, asyncio.Future]]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def pending(self) -> int:
        """尚未執行的工作數量"""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, job: Job, name: str = "job") -> asyncio.Future:
        """
        提交工作

        Args:
            job: 無參數、返回 awaitable 的函數
            name: 工作名稱（log 用）

        Returns:
            工作完成時的結果 future
        """
        if self._closed:
            raise RuntimeError(f"{self.name} 已關閉")

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._queue.put_nowait((name, job, future))

        if self._task is None:
            self._task = loop.create_task(self._run(), name=self.name)

        return future

    async def _run(self) -> None:
        while True:
            name, job, future = await self._queue.get()
            try:
                if future.cancelled():
                    continue
                logger.debug(f"[{self.name}] 執行工作: {name}")
                try:
                    result = await job()
                except asyncio.CancelledError:
                    future.cancel()
                    raise
                except Exception as e:
                    logger.exception(f"[{self.name}] 工作失敗: {name} - {e}")
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """等待目前所有工作完成"""
        await self._queue.join()

    async def close(self) -> int:
        """
        停止 worker，丟棄尚未執行的工作

        Returns:
            被丟棄的工作數量
        """
        self._closed = True
        dropped = 0

        while not self._queue.empty():
            _, _, future = self._queue.get_nowait()
            self._queue.task_done()
            future.cancel()
            dropped += 1

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if dropped:
            logger.debug(f"[{self.name}] 已丟棄 {dropped} 個工作")
        return dropped
