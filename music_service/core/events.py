"""
播放事件

兩種事件：
- TrackChanged: 切換歌曲
- StateChanged: 播放 / 暫停狀態改變

每個觀察者透過 EventChannel.subscribe 取得一個訂閱，
依訂閱順序在前景（事件循環）逐一 await。
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Union, TYPE_CHECKING
from loguru import logger

if TYPE_CHECKING:
    from .track import Track


@dataclass(frozen=True)
class TrackChanged:
    track: "Track"
    index: int


@dataclass(frozen=True)
class StateChanged:
    is_playing: bool


PlayerEvent = Union[TrackChanged, StateChanged]
EventHandler = Callable[[PlayerEvent], Awaitable[None]]


class EventChannel:
    """
    事件訂閱通道

    使用方式：
        channel = EventChannel()
        unsubscribe = channel.subscribe(handler)
        await channel.emit(TrackChanged(track, 0))
        unsubscribe()
    """

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """
        訂閱事件

        Returns:
            取消訂閱的函數
        """
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def clear(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)

    async def emit(self, event: PlayerEvent) -> None:
        """依序通知所有訂閱者，單一訂閱者失敗不影響其他人"""
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception as e:
                logger.error(f"事件處理失敗: {type(event).__name__} - {e}")


class PlaybackListener:
    """
    UI 監聽者介面

    覆寫需要的方法即可，再用 MusicService.set_listener() 註冊。
    """

    async def on_track_changed(self, track: "Track", index: int) -> None:
        pass

    async def on_playback_state_changed(self, is_playing: bool) -> None:
        pass

    async def handle(self, event: PlayerEvent) -> None:
        match event:
            case TrackChanged(track=track, index=index):
                await self.on_track_changed(track, index)
            case StateChanged(is_playing=is_playing):
                await self.on_playback_state_changed(is_playing)
