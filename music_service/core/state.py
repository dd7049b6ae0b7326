"""
播放狀態機

狀態轉換：
    IDLE → PREPARING → PLAYING ⇄ PAUSED
    PREPARING / PLAYING → ENDED → (下一首的 PREPARING 或 IDLE)
    任何狀態 → IDLE（stop）

同時用時間戳計算播放秒數，暫停/恢復後時間仍然正確。
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EngineState(Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


# 允許的狀態轉換
_TRANSITIONS = {
    EngineState.IDLE: {EngineState.PREPARING},
    EngineState.PREPARING: {EngineState.PLAYING, EngineState.ENDED},
    EngineState.PLAYING: {EngineState.PAUSED, EngineState.ENDED, EngineState.PREPARING},
    EngineState.PAUSED: {EngineState.PLAYING, EngineState.PREPARING},
    EngineState.ENDED: {EngineState.PREPARING},
}


class InvalidTransition(RuntimeError):
    pass


@dataclass
class PlaybackState:
    """
    播放狀態追蹤

    使用方式：
        state = PlaybackState()
        state.prepare("track-id")
        state.start()      # PREPARING → PLAYING
        state.pause()      # PLAYING → PAUSED
        state.resume()     # PAUSED → PLAYING
        state.stop()       # → IDLE
    """

    status: EngineState = EngineState.IDLE

    # 私有屬性用於時間計算
    _start_time: float = field(default=0, repr=False)
    _pause_start: float = field(default=0, repr=False)
    _total_paused: float = field(default=0, repr=False)

    _current_track_id: Optional[str] = field(default=None, repr=False)

    def _move(self, target: EngineState) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransition(f"{self.status.value} → {target.value}")
        self.status = target

    def prepare(self, track_id: str) -> None:
        """開始載入新的歌曲"""
        self._move(EngineState.PREPARING)
        self._current_track_id = track_id

    def start(self) -> None:
        """載入完成，開始播放"""
        self._move(EngineState.PLAYING)
        self._start_time = time.time()
        self._pause_start = 0
        self._total_paused = 0

    def pause(self) -> bool:
        """
        暫停播放

        Returns:
            是否成功暫停（不在播放中則返回 False）
        """
        if self.status is not EngineState.PLAYING:
            return False
        self._move(EngineState.PAUSED)
        self._pause_start = time.time()
        return True

    def resume(self) -> bool:
        """
        恢復播放

        Returns:
            是否成功恢復（未暫停則返回 False）
        """
        if self.status is not EngineState.PAUSED:
            return False
        self._move(EngineState.PLAYING)
        self._total_paused += time.time() - self._pause_start
        return True

    def end(self) -> None:
        """目前歌曲播放完畢"""
        self._move(EngineState.ENDED)

    def stop(self) -> None:
        """停止播放，重置所有狀態"""
        self.status = EngineState.IDLE
        self._start_time = 0
        self._pause_start = 0
        self._total_paused = 0
        self._current_track_id = None

    def restore(self, status: EngineState, track_id: Optional[str]) -> None:
        """載入失敗時回到之前的穩定狀態（不重設時間）"""
        self.status = status
        self._current_track_id = track_id

    # === 查詢 ===

    @property
    def is_playing(self) -> bool:
        return self.status is EngineState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self.status is EngineState.PAUSED

    @property
    def has_track(self) -> bool:
        """是否有已載入的歌曲（可以 play / pause）"""
        return self.status in (EngineState.PLAYING, EngineState.PAUSED)

    @property
    def current_track_id(self) -> Optional[str]:
        return self._current_track_id

    @property
    def elapsed(self) -> int:
        """
        即時計算當前播放秒數
        """
        if not self.has_track:
            return 0

        if self.is_paused:
            elapsed = self._pause_start - self._start_time - self._total_paused
        else:
            elapsed = time.time() - self._start_time - self._total_paused

        return max(0, int(elapsed))

    def format_time(self, seconds: Optional[int] = None) -> str:
        """
        格式化時間為 MM:SS 或 HH:MM:SS
        """
        if seconds is None:
            seconds = self.elapsed

        if seconds >= 3600:
            hours = seconds // 3600
            minutes = (seconds % 3600) // 60
            secs = seconds % 60
            return f"{hours}:{minutes:02d}:{secs:02d}"
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}:{secs:02d}"
