"""
播放後端介面

PlaybackEngine 只依賴這個介面，實際的解碼 / 輸出交給外部程式或函式庫。
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
from loguru import logger

from ..core.resolver import PlayableRef

# 播放結束回調：error 為 None 表示正常結束，可能在任意線程被呼叫
FinishedCallback = Callable[[Optional[Exception]], None]


class PlaybackBackend(ABC):
    """
    播放後端基類

    子類別需要實作：
    - load: 載入並開始播放（失敗拋出 BackendLoadError，且不影響正在播放的歌曲）
    - play / pause: 恢復 / 暫停
    - stop: 停止並釋放目前的歌曲
    - release: 釋放所有資源
    - is_playing: 是否正在輸出聲音
    """

    def __init__(self):
        self._finished_callback: Optional[FinishedCallback] = None

    def set_finished_callback(self, callback: Optional[FinishedCallback]) -> None:
        self._finished_callback = callback

    def _notify_finished(self, error: Optional[Exception] = None) -> None:
        """通知引擎目前歌曲已結束"""
        if self._finished_callback is None:
            logger.debug("播放結束，但沒有註冊回調")
            return
        self._finished_callback(error)

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        ...

    @abstractmethod
    async def load(self, ref: PlayableRef) -> None:
        ...

    @abstractmethod
    async def play(self) -> None:
        ...

    @abstractmethod
    async def pause(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    @abstractmethod
    async def release(self) -> None:
        ...
