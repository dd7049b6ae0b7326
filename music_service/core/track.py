"""
歌曲資料結構

Track 除了快取欄位以外都不可變。快取欄位放在 CacheCell 中，
由背景下載寫入、前景播放讀取，因此所有存取都經過鎖保護。
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Mapping, Any
from urllib.parse import urlparse

from ..constants import REMOTE_SCHEMES, UNKNOWN_ARTIST


class SourceKind(Enum):
    """歌曲來源種類"""
    LOCAL = "local"                  # 檔案系統路徑
    CONTENT_HANDLE = "content"       # 系統提供的內容識別（非 http 的 URI）
    REMOTE = "remote"                # 需要透過網路下載的 URL


def classify(locator: str) -> SourceKind:
    """
    依照定位字串判斷來源種類

    只有 http / https 視為遠端；其他帶 scheme 的 URI 是內容識別；
    沒有 scheme 的就是本地路徑。
    """
    scheme = urlparse(locator).scheme.lower()
    if scheme in REMOTE_SCHEMES:
        return SourceKind.REMOTE
    # Windows 磁碟代號（C:\...）會被解析成單字元 scheme
    if len(scheme) > 1 or scheme == "file":
        return SourceKind.CONTENT_HANDLE
    return SourceKind.LOCAL


def format_extension(name: str) -> str:
    """取得副檔名（大寫，不含點）"""
    last_dot = name.rfind(".")
    if last_dot > 0:
        return name[last_dot + 1:].upper()
    return ""


class CacheCell:
    """
    受鎖保護的快取欄位

    寫入者：MemoryCache（背景 worker）
    讀取者：播放決策（前景）
    """

    __slots__ = ("_lock", "_data")

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Optional[bytes] = None

    def get(self) -> Optional[bytes]:
        with self._lock:
            return self._data

    def set(self, data: Optional[bytes]) -> None:
        with self._lock:
            self._data = data

    def set_if_empty(self, data: bytes) -> bool:
        """只有在尚未快取時寫入，返回是否有寫入"""
        with self._lock:
            if self._data is not None:
                return False
            self._data = data
            return True


@dataclass(frozen=True)
class Track:
    """
    歌曲資料結構

    id 直接取自定位字串，作為快取的 key。
    """
    id: str                               # 穩定識別（= locator）
    display_name: str                     # 顯示名稱
    source_kind: SourceKind               # 來源種類
    locator: str                          # 路徑 / 內容識別 / URL
    artist: str = UNKNOWN_ARTIST          # 演出者
    format_ext: str = ""                  # 格式（大寫副檔名）

    # 快取相關
    _cache: CacheCell = field(default_factory=CacheCell, repr=False, compare=False)

    # === 建構 ===

    @classmethod
    def from_path(cls, path: str) -> "Track":
        """由本地檔案建立"""
        p = Path(path)
        absolute = str(p.absolute())
        return cls(
            id=absolute,
            display_name=p.name,
            source_kind=SourceKind.LOCAL,
            locator=absolute,
            format_ext=format_extension(p.name),
        )

    @classmethod
    def from_uri(cls, uri: str, display_name: str) -> "Track":
        """由 URI 建立（http/https 為遠端，其餘為內容識別）"""
        kind = classify(uri)
        if kind is SourceKind.LOCAL:
            kind = SourceKind.CONTENT_HANDLE
        return cls(
            id=uri,
            display_name=display_name,
            source_kind=kind,
            locator=uri,
            format_ext=format_extension(display_name),
        )

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "Track":
        """
        由外部來源清單的項目建立

        Args:
            entry: 包含 display_name, source_kind, locator 的 dict
                   （source_kind 可為 SourceKind 或其字串值，省略時自動判斷）

        不檢查遠端是否可連線，失敗會延後到快取 / 播放時才發生。
        """
        locator = entry["locator"]
        display_name = entry.get("display_name") or Path(locator).name or locator

        kind = entry.get("source_kind")
        if kind is None:
            kind = classify(locator)
        elif not isinstance(kind, SourceKind):
            kind = SourceKind(kind)

        return cls(
            id=locator,
            display_name=display_name,
            source_kind=kind,
            locator=locator,
            artist=entry.get("artist") or UNKNOWN_ARTIST,
            format_ext=format_extension(display_name),
        )

    # === 屬性 ===

    @property
    def is_remote(self) -> bool:
        return self.source_kind is SourceKind.REMOTE

    @property
    def cached_bytes(self) -> Optional[bytes]:
        """已下載到記憶體的音訊資料"""
        return self._cache.get()

    @property
    def is_cached(self) -> bool:
        """是否已下載到記憶體"""
        return self._cache.get() is not None

    # === 快取欄位（僅 MemoryCache 使用）===

    def store_bytes(self, data: bytes) -> bool:
        """
        寫入快取資料

        Returns:
            是否為第一次寫入

        Raises:
            ValueError: 非遠端歌曲不允許快取
        """
        if not self.is_remote:
            raise ValueError(f"只有遠端歌曲可以快取: {self.display_name}")
        return self._cache.set_if_empty(data)

    def clear_cache(self) -> None:
        """釋放快取資料"""
        self._cache.set(None)
