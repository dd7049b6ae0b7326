"""
HTTP 非同步下載器

使用 aiohttp 把遠端音訊整首讀進記憶體：
- 完全不阻塞事件循環
- 連線 / 讀取各自有超時
- 超過單首上限就放棄，避免記憶體無限增長
- 所有失敗都轉成 FetchError
"""

import asyncio
from typing import Optional
from urllib.parse import urlparse

import aiohttp
from loguru import logger

from ..constants import (
    FETCH_CHUNK_SIZE,
    FETCH_CONNECT_TIMEOUT,
    FETCH_READ_TIMEOUT,
    MAX_TRACK_BYTES,
    REMOTE_SCHEMES,
)
from ..utils.errors import FetchError


class HttpFetcher:
    """
    HTTP 下載器

    使用方式：
        fetcher = HttpFetcher()
        data = await fetcher.fetch("https://example.com/song.mp3")
        await fetcher.close()

    也可以直接當作 MemoryCache 的 fetcher：
        cache = MemoryCache(fetcher=fetcher.fetch)
    """

    def __init__(
        self,
        connect_timeout: float = FETCH_CONNECT_TIMEOUT,
        read_timeout: float = FETCH_READ_TIMEOUT,
        max_bytes: int = MAX_TRACK_BYTES,
        chunk_size: int = FETCH_CHUNK_SIZE,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            connect_timeout: 連線超時（秒）
            read_timeout: 讀取超時（秒，每次讀取）
            max_bytes: 單首歌曲最大位元組數
            chunk_size: 每次讀取的區塊大小
            session: 外部提供的 ClientSession（可選，不會由本類別關閉）
        """
        self.timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=connect_timeout,
            sock_read=read_timeout,
        )
        self.max_bytes = max_bytes
        self.chunk_size = chunk_size

        self._session = session
        self._owns_session = session is None

        logger.debug(
            f"HttpFetcher 初始化: timeout=({connect_timeout}s, {read_timeout}s), "
            f"max_bytes={max_bytes}"
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def fetch(self, url: str) -> bytes:
        """
        下載整首音訊

        Args:
            url: http / https URL

        Returns:
            音訊資料

        Raises:
            FetchError: 非 http(s)、HTTP 狀態碼錯誤、網路錯誤、超時、超過大小上限
        """
        if urlparse(url).scheme.lower() not in REMOTE_SCHEMES:
            raise FetchError(f"不支援的 URL: {url}", url=url)

        session = self._get_session()
        buffer = bytearray()

        try:
            async with session.get(url, timeout=self.timeout) as resp:
                if resp.status != 200:
                    raise FetchError(f"HTTP {resp.status}: {url}", url=url, status=resp.status)

                declared = resp.content_length
                if declared is not None and declared > self.max_bytes:
                    raise FetchError(
                        f"檔案過大 ({declared} bytes > {self.max_bytes}): {url}", url=url
                    )

                async for chunk in resp.content.iter_chunked(self.chunk_size):
                    buffer.extend(chunk)
                    if len(buffer) > self.max_bytes:
                        raise FetchError(f"檔案過大 (> {self.max_bytes} bytes): {url}", url=url)

        except asyncio.TimeoutError as e:
            raise FetchError(f"下載超時: {url}", url=url) from e
        except aiohttp.ClientError as e:
            raise FetchError(f"網路錯誤: {url} - {e}", url=url) from e

        logger.debug(f"下載完成: {len(buffer) / 1024 / 1024:.1f} MB ({url})")
        return bytes(buffer)

    async def __call__(self, url: str) -> bytes:
        return await self.fetch(url)

    async def close(self) -> None:
        """關閉自行建立的 ClientSession"""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
