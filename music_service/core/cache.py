"""
記憶體快取管理器

策略：
- 遠端歌曲整首下載到記憶體（key = track.id）
- 所有下載都交給同一個背景 worker，依播放清單順序一首一首來
- 播放時才把 bytes 寫成暫存檔（materialize），每首最多一個暫存檔
- 不寫入永久磁碟快取，服務關閉即全部釋放

範例：
    播放清單：[A(本地), B(遠端), C(遠端)]
    set_playlist → 背景依序下載 B、C
    播放 B：已快取 → 寫出暫存檔播放；未快取 → 直接串流，同時排入下載
"""

import asyncio
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set, List
from loguru import logger

from .track import Track
from .worker import CacheWorker
from ..constants import CACHE_DIR, TEMP_FILE_PREFIX
from ..utils.errors import FetchError, MaterializationError

Fetcher = Callable[[str], Awaitable[bytes]]


@dataclass
class CacheEntry:
    """快取項目：原始 bytes + 延遲建立的暫存檔"""
    data: bytes
    temp_path: Optional[Path] = None


@dataclass(frozen=True)
class CacheStats:
    """快取統計"""
    entries: int
    total_bytes: int
    temp_files: int
    pending: int

    def format_size(self) -> str:
        size = float(self.total_bytes)
        for unit in ("B", "KB", "MB"):
            if size < 1024:
                return f"{size:.1f} {unit}"
            size /= 1024
        return f"{size:.1f} GB"


class MemoryCache:
    """
    記憶體快取管理器

    使用方式：
        cache = MemoryCache(fetcher=http_fetcher.fetch, temp_dir="./temp/music")

        # 背景依序快取整個播放清單
        await cache.cache_all(tracks)

        # 播放時取得暫存檔
        if track.is_cached:
            path = await cache.materialize(track)

        await cache.close()
    """

    def __init__(
        self,
        fetcher: Fetcher,
        temp_dir: str = CACHE_DIR,
        worker: Optional[CacheWorker] = None,
    ):
        """
        初始化快取管理器

        Args:
            fetcher: 下載函數，接收 URL 返回 bytes，失敗拋出 FetchError
            temp_dir: 暫存檔目錄
            worker: 背景 worker（可選，預設自行建立）
        """
        self._fetcher = fetcher
        self.temp_dir = Path(temp_dir)
        self._worker = worker or CacheWorker()

        # track.id -> CacheEntry，背景寫入、前景讀取
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

        # 已排入 worker、尚未完成的 track.id
        self._pending: Set[str] = set()

        # 目前播放清單中的 track.id（None 表示尚未設定，不做過濾）
        self._retained: Optional[Set[str]] = None

        # 被寫入過快取欄位的 Track 物件，釋放時一併清空
        self._holders: Dict[str, List[Track]] = {}

        # 暫存檔寫出時的序列化
        self._materialize_lock = asyncio.Lock()

        logger.debug(f"MemoryCache 初始化: temp_dir={temp_dir}")

    # === 查詢 ===

    def is_cached(self, track_id: str) -> bool:
        with self._lock:
            return track_id in self._entries

    def is_pending(self, track_id: str) -> bool:
        with self._lock:
            return track_id in self._pending

    def get(self, track_id: str) -> Optional[bytes]:
        """取得快取 bytes（如果存在）"""
        with self._lock:
            entry = self._entries.get(track_id)
            return entry.data if entry else None

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                total_bytes=sum(len(e.data) for e in self._entries.values()),
                temp_files=sum(1 for e in self._entries.values() if e.temp_path is not None),
                pending=len(self._pending),
            )

    # === 播放清單同步 ===

    def retain(self, tracks: Iterable[Track]) -> int:
        """
        設定目前播放清單

        - 不在清單中的快取（含暫存檔）會被釋放
        - 已有快取的 id 會回填到新的 Track 物件

        Returns:
            被釋放的快取數量
        """
        remote = [track for track in tracks if track.is_remote]
        retained = {track.id for track in remote}

        with self._lock:
            self._retained = retained
            dropped = [tid for tid in self._entries if tid not in retained]
            removed = [self._entries.pop(tid) for tid in dropped]
            released = [t for tid in list(self._holders) if tid not in retained
                        for t in self._holders.pop(tid)]

        for entry in removed:
            self._delete_temp_file(entry)
        for track in released:
            track.clear_cache()

        for track in remote:
            self._attach_known(track)

        if dropped:
            logger.debug(f"釋放 {len(dropped)} 首不在播放清單中的快取")
        return len(dropped)

    def register(self, track: Track) -> None:
        """把單首歌加入目前播放清單（不影響其他歌曲）"""
        if not track.is_remote:
            return
        with self._lock:
            if self._retained is not None:
                self._retained.add(track.id)
        self._attach_known(track)

    def _is_wanted(self, track_id: str) -> bool:
        with self._lock:
            return self._retained is None or track_id in self._retained

    def _attach(self, track: Track, data: bytes) -> None:
        """把 bytes 寫入 Track 的快取欄位並記錄持有者"""
        track.store_bytes(data)
        with self._lock:
            holders = self._holders.setdefault(track.id, [])
            if not any(h is track for h in holders):
                holders.append(track)

    def _attach_known(self, track: Track) -> bool:
        """如果這個 id 已有快取，回填到 Track 物件"""
        with self._lock:
            entry = self._entries.get(track.id)
        if entry is None:
            return False
        self._attach(track, entry.data)
        return True

    # === 核心邏輯 ===

    def cache_all(self, tracks: Iterable[Track]) -> asyncio.Future:
        """
        背景依序快取所有未快取的遠端歌曲

        已快取或已在排程中的歌曲會直接略過，所以重複呼叫不會重複下載。

        Returns:
            完成時結果為成功下載數量的 future
        """
        batch: List[Track] = []
        with self._lock:
            for track in tracks:
                if not track.is_remote or track.id in self._pending:
                    continue
                if track.id in self._entries or track.is_cached:
                    continue
                self._pending.add(track.id)
                batch.append(track)

        if not batch:
            future = asyncio.get_running_loop().create_future()
            future.set_result(0)
            return future

        logger.debug(f"排入背景快取: {len(batch)} 首")
        return self._worker.submit(lambda: self._run_batch(batch), name=f"cache_all({len(batch)})")

    async def _run_batch(self, batch: List[Track]) -> int:
        fetched = 0
        try:
            for track in batch:
                if not self._is_wanted(track.id):
                    logger.debug(f"略過已移出播放清單的歌曲: {track.display_name}")
                    continue
                if await self._fetch_into(track):
                    fetched += 1
        finally:
            with self._lock:
                for track in batch:
                    self._pending.discard(track.id)

        logger.info(f"背景快取完成: {fetched}/{len(batch)} 首")
        return fetched

    def schedule_one(self, track: Track) -> Optional[asyncio.Future]:
        """
        把單首歌排入背景快取

        已快取或已在排程中則不做任何事（避免同一首歌重複下載）。

        Returns:
            工作 future，若未排程則返回 None
        """
        if not track.is_remote:
            return None

        with self._lock:
            if track.id in self._pending or track.id in self._entries:
                return None
            self._pending.add(track.id)

        async def job() -> bool:
            try:
                return await self.cache_one(track)
            finally:
                with self._lock:
                    self._pending.discard(track.id)

        return self._worker.submit(job, name=f"cache_one({track.display_name})")

    async def cache_one(self, track: Track) -> bool:
        """
        在呼叫者的（背景）執行環境中下載單首歌

        Returns:
            快取是否可用（下載失敗返回 False，不拋出 FetchError）
        """
        if not track.is_remote:
            return False
        return await self._fetch_into(track)

    async def _fetch_into(self, track: Track) -> bool:
        """check-then-set：已有快取就不再下載"""
        if self._attach_known(track):
            return True

        try:
            logger.info(f"下載到記憶體: {track.display_name}")
            data = await self._fetcher(track.locator)
        except FetchError as e:
            logger.warning(f"快取失敗: {track.display_name} - {e.message}")
            return False
        except Exception as e:
            logger.exception(f"快取時發生未預期錯誤: {track.display_name} - {e}")
            return False

        with self._lock:
            entry = self._entries.setdefault(track.id, CacheEntry(data=data))
        self._attach(track, entry.data)

        logger.info(f"已快取 {len(entry.data)} bytes: {track.display_name}")
        return True

    # === 暫存檔 ===

    async def materialize(self, track: Track) -> Path:
        """
        把快取 bytes 轉成暫存檔交給播放後端

        第一次呼叫時建立，之後只要檔案還在就直接重用。

        Raises:
            MaterializationError: 沒有快取或寫檔失敗
        """
        async with self._materialize_lock:
            with self._lock:
                entry = self._entries.get(track.id)

            if entry is None:
                data = track.cached_bytes
                if data is None:
                    raise MaterializationError(f"沒有快取資料: {track.display_name}", track.id)
                with self._lock:
                    entry = self._entries.setdefault(track.id, CacheEntry(data=data))

            if entry.temp_path is not None and entry.temp_path.exists():
                return entry.temp_path

            try:
                path = await asyncio.to_thread(
                    self._write_temp_file, entry.data, track.format_ext.lower()
                )
            except OSError as e:
                raise MaterializationError(f"寫入暫存檔失敗: {track.display_name} - {e}", track.id) from e

            with self._lock:
                current = self._entries.get(track.id)
            if current is not entry:
                # 寫檔期間快取被清掉了
                self._remove_file(path)
                raise MaterializationError(f"快取已被釋放: {track.display_name}", track.id)

            entry.temp_path = path
            logger.debug(f"建立暫存檔: {path.name} ({track.display_name})")
            return path

    def _write_temp_file(self, data: bytes, extension: str) -> Path:
        """寫出暫存檔（在 worker thread 執行）"""
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        suffix = f".{extension}" if extension else ""
        fd, name = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, suffix=suffix, dir=self.temp_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError:
            self._remove_file(Path(name))
            raise
        return Path(name)

    # === 清理 ===

    def _delete_temp_file(self, entry: CacheEntry) -> None:
        if entry.temp_path is not None:
            self._remove_file(entry.temp_path)
            entry.temp_path = None

    @staticmethod
    def _remove_file(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"刪除暫存檔失敗: {path} - {e}")

    def clear(self) -> int:
        """
        釋放所有快取 bytes 並刪除所有暫存檔

        Returns:
            被釋放的快取數量
        """
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            tracks = [t for group in self._holders.values() for t in group]
            self._holders.clear()

        for entry in entries:
            self._delete_temp_file(entry)
        for track in tracks:
            track.clear_cache()

        logger.debug(f"已清空所有快取，共釋放 {len(entries)} 首")
        return len(entries)

    async def close(self) -> None:
        """
        關閉快取（服務結束時呼叫）

        先停掉 worker 丟棄排程中的下載，再釋放所有快取
        """
        await self._worker.close()
        with self._lock:
            self._pending.clear()
        self.clear()
