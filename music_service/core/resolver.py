"""
音訊來源解析

決定播放後端拿到的是什麼：
1. 記憶體快取的暫存檔（最優先）
2. 遠端 URL 直接串流
3. 本地路徑 / 內容識別直接播放
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .track import Track, SourceKind


class RefKind(Enum):
    CACHED_FILE = "cached"
    STREAM = "stream"
    DIRECT = "direct"


@dataclass(frozen=True)
class PlayableRef:
    """播放後端可以理解的來源參考"""
    kind: RefKind
    target: str          # 檔案路徑或 URL
    track_id: str

    @property
    def is_cached(self) -> bool:
        return self.kind is RefKind.CACHED_FILE


class SourceResolver:
    """
    來源解析器（純函數，沒有副作用）

    使用方式：
        resolver = SourceResolver()
        ref = resolver.resolve(track, cached_file=path_or_none)
    """

    def resolve(self, track: Track, cached_file: Optional[Path] = None) -> PlayableRef:
        if cached_file is not None:
            return PlayableRef(RefKind.CACHED_FILE, str(cached_file), track.id)

        if track.source_kind is SourceKind.REMOTE:
            return PlayableRef(RefKind.STREAM, track.locator, track.id)

        return PlayableRef(RefKind.DIRECT, track.locator, track.id)
