"""
播放清單管理

特性：
- 插入順序 = 播放順序
- current_index 為 -1（沒有當前歌曲）或有效索引
- 不循環：第一首沒有上一首，最後一首沒有下一首
- current_index 會被背景與前景同時讀取，使用 threading.Lock 保護
"""

import threading
from typing import Iterable, Iterator, List, Optional
from loguru import logger

from .track import Track


class Playlist:
    """
    播放清單

    使用方式：
        playlist = Playlist()
        playlist.replace(tracks)   # 整批替換，current_index 重設為 -1
        playlist.append(track)     # 加到尾端，不影響 current_index

        playlist.select(2)         # 設定當前歌曲
        playlist.current           # 當前歌曲
    """

    def __init__(self, tracks: Optional[Iterable[Track]] = None):
        self._tracks: List[Track] = list(tracks or [])
        self._current_index: int = -1
        self._lock = threading.Lock()

    # === 屬性 ===

    @property
    def current_index(self) -> int:
        """當前播放的索引（0-based，-1 表示沒有）"""
        with self._lock:
            return self._current_index

    @property
    def current(self) -> Optional[Track]:
        """當前播放的歌曲"""
        with self._lock:
            if self._current_index < 0:
                return None
            return self._tracks[self._current_index]

    @property
    def tracks(self) -> List[Track]:
        """取得所有歌曲（只讀副本）"""
        with self._lock:
            return self._tracks.copy()

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    # === 修改 ===

    def replace(self, tracks: Iterable[Track], keep_index: bool = False) -> List[Track]:
        """
        整批替換播放清單

        Args:
            tracks: 新的歌曲列表
            keep_index: 是否保留 current_index（超出新清單範圍時仍會重設）

        Returns:
            被替換掉的舊歌曲列表
        """
        new_tracks = list(tracks)
        with self._lock:
            old = self._tracks
            self._tracks = new_tracks
            if not keep_index or self._current_index >= len(new_tracks):
                self._current_index = -1
        logger.debug(f"播放清單已替換，目前共 {len(new_tracks)} 首")
        return old

    def append(self, track: Track) -> int:
        """
        新增歌曲到尾端

        Returns:
            新歌曲的索引
        """
        with self._lock:
            self._tracks.append(track)
            index = len(self._tracks) - 1
        logger.debug(f"已新增歌曲: {track.display_name}，目前共 {index + 1} 首")
        return index

    def select(self, index: int) -> Optional[Track]:
        """
        設定當前索引

        Returns:
            目標歌曲，若索引無效則返回 None（不改變狀態）
        """
        with self._lock:
            if index < 0 or index >= len(self._tracks):
                return None
            self._current_index = index
            return self._tracks[index]

    def reset(self) -> None:
        """清除當前索引"""
        with self._lock:
            self._current_index = -1

    # === 查詢 ===

    def in_bounds(self, index: int) -> bool:
        with self._lock:
            return 0 <= index < len(self._tracks)

    def has_next(self) -> bool:
        with self._lock:
            return self._current_index + 1 < len(self._tracks)

    def has_previous(self) -> bool:
        with self._lock:
            return self._current_index > 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._tracks)

    def __getitem__(self, index: int) -> Track:
        with self._lock:
            return self._tracks[index]

    def __iter__(self) -> Iterator[Track]:
        return iter(self.tracks)
