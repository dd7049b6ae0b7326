"""
音樂服務核心

整合所有播放相關功能，是外部（UI、通知列）唯一需要接觸的物件：
- 播放清單管理（使用 Playlist）
- 記憶體快取（使用 MemoryCache）
- 播放控制（使用 PlaybackEngine）
- 事件轉發（UI 監聽者、通知列）

下載、寫暫存檔、後端載入的失敗都在這裡被吸收並記錄；
只有在 shutdown 之後繼續呼叫才會拋出 ServiceClosedError。
"""

import asyncio
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, TYPE_CHECKING
from loguru import logger

from .cache import MemoryCache, Fetcher
from .engine import PlaybackEngine
from .events import EventChannel, EventHandler, PlaybackListener, PlayerEvent
from .playlist import Playlist
from .resolver import PlayableRef, SourceResolver
from .state import EngineState
from .track import Track
from ..constants import CACHE_DIR
from ..fetcher.http import HttpFetcher
from ..ui.notification import NotificationBridge, TransportCommand
from ..utils.decorators import absorb_errors, ensure_open, log_operation
from ..utils.errors import MaterializationError

if TYPE_CHECKING:
    from ..backend.base import PlaybackBackend


class MusicService:
    """
    音樂服務核心類別

    必須在事件循環中建立（建構子會取得當前運行中的循環）。

    使用方式：
        service = MusicService(backend=FFplayBackend())
        service.set_listener(my_listener)
        service.attach_notification(LoggingNotificationBridge())

        await service.set_playlist(tracks)
        await service.play_track(0)
        await service.handle_command(TransportCommand.NEXT)

        await service.shutdown()
    """

    def __init__(
        self,
        backend: "PlaybackBackend",
        fetcher: Optional[Fetcher] = None,
        cache_dir: str = CACHE_DIR,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        初始化音樂服務

        Args:
            backend: 播放後端
            fetcher: 下載函數（可選，預設使用 HttpFetcher）
            cache_dir: 暫存檔目錄
            loop: 事件循環（可選，會自動取得）
        """
        self._loop = loop or asyncio.get_running_loop()

        # 預設下載器由服務自己建立，也由服務負責關閉
        self._http_fetcher: Optional[HttpFetcher] = None
        if fetcher is None:
            self._http_fetcher = HttpFetcher()
            fetcher = self._http_fetcher

        # 核心元件
        self.playlist = Playlist()
        self.cache = MemoryCache(fetcher=fetcher, temp_dir=cache_dir)
        self.resolver = SourceResolver()
        self.events = EventChannel()
        self.engine = PlaybackEngine(
            backend=backend,
            playlist=self.playlist,
            resolve=self._resolve,
            events=self.events,
            loop=self._loop,
        )

        # 外部觀察者
        self._listener: Optional[PlaybackListener] = None
        self._listener_unsubscribe: Optional[Callable[[], None]] = None
        self._notification: Optional[NotificationBridge] = None
        self._notification_unsubscribe: Optional[Callable[[], None]] = None

        self._closed = False

        logger.debug(f"MusicService 初始化: cache_dir={cache_dir}")

    # === 屬性 ===

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_playing(self) -> bool:
        """是否正在播放"""
        return self.engine.is_playing

    @property
    def current_track(self) -> Optional[Track]:
        """當前播放的歌曲"""
        return self.playlist.current

    @property
    def current_index(self) -> int:
        return self.playlist.current_index

    @property
    def tracks(self) -> List[Track]:
        return self.playlist.tracks

    # === 播放清單 ===

    @ensure_open
    @log_operation("設定播放清單")
    async def set_playlist(self, tracks: Iterable[Track]) -> Optional[asyncio.Future]:
        """
        整批替換播放清單

        正在播放的歌曲會先停止，current_index 重設為 -1，不自動播放；
        遠端歌曲排入背景快取。

        Returns:
            背景快取的 future（完成時結果為下載數量）
        """
        new_tracks = list(tracks)
        if self.engine.status is not EngineState.IDLE:
            await self.engine.stop()
        self.playlist.replace(new_tracks)
        self.cache.retain(new_tracks)
        logger.info(f"播放清單已設定: {len(new_tracks)} 首")
        return self.cache.cache_all(new_tracks)

    @ensure_open
    async def set_playlist_entries(self, entries: Iterable[Dict]) -> Optional[asyncio.Future]:
        """
        以外部來源清單的項目設定播放清單

        Args:
            entries: {display_name, source_kind, locator} 的序列
        """
        return await self.set_playlist(Track.from_entry(entry) for entry in entries)

    @ensure_open
    async def add_to_library_queue(self, track: Track) -> int:
        """
        把一首歌加到播放清單尾端（不影響現有歌曲與當前索引）

        Returns:
            新歌曲的索引
        """
        index = self.playlist.append(track)
        self.cache.register(track)
        self.cache.schedule_one(track)
        logger.info(f"已加入播放清單: {track.display_name}")
        return index

    # === 播放控制 ===

    @ensure_open
    @absorb_errors
    async def play_track(self, index: int) -> Optional[Track]:
        """
        播放指定索引的歌曲

        - 已快取：寫出暫存檔播放（失敗時改為串流）
        - 遠端未快取：直接串流，同時排入背景快取
        - 本地 / 內容識別：直接播放

        索引超出範圍時不做任何事。

        Returns:
            開始播放的歌曲，沒有播放則返回 None
        """
        return await self.engine.play_at(index)

    @ensure_open
    @absorb_errors
    async def play(self) -> bool:
        return await self.engine.play()

    @ensure_open
    @absorb_errors
    async def pause(self) -> bool:
        return await self.engine.pause()

    @ensure_open
    @absorb_errors
    async def toggle_pause(self) -> bool:
        return await self.engine.toggle_pause()

    @ensure_open
    @absorb_errors
    async def next(self) -> Optional[Track]:
        return await self.engine.next()

    @ensure_open
    @absorb_errors
    async def previous(self) -> Optional[Track]:
        return await self.engine.previous()

    @ensure_open
    @absorb_errors
    async def stop(self) -> None:
        await self.engine.stop()

    @ensure_open
    async def handle_command(self, command: TransportCommand) -> None:
        """
        處理傳輸指令（通知列按鈕、UI）
        """
        logger.debug(f"[MusicService] 收到指令: {command.name}")
        match command:
            case TransportCommand.PLAY:
                await self.play()
            case TransportCommand.PAUSE:
                await self.pause()
            case TransportCommand.NEXT:
                await self.next()
            case TransportCommand.PREVIOUS:
                await self.previous()

    # === 觀察者 ===

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """
        訂閱播放事件（TrackChanged / StateChanged）

        Returns:
            取消訂閱的函數
        """
        return self.events.subscribe(handler)

    def set_listener(self, listener: Optional[PlaybackListener]) -> None:
        """設定 UI 監聽者（同一時間只有一個）"""
        if self._listener_unsubscribe is not None:
            self._listener_unsubscribe()
            self._listener_unsubscribe = None

        self._listener = listener
        if listener is not None:
            self._listener_unsubscribe = self.events.subscribe(listener.handle)

    def attach_notification(self, bridge: NotificationBridge) -> None:
        """
        連接通知列

        - 播放事件 → bridge.render
        - bridge 的按鈕 → handle_command
        """
        if self._notification_unsubscribe is not None:
            self._notification_unsubscribe()

        self._notification = bridge
        bridge.set_command_handler(self.handle_command)
        self._notification_unsubscribe = self.events.subscribe(self._refresh_notification)

    async def _refresh_notification(self, _event: PlayerEvent) -> None:
        if self._notification is None:
            return
        track = self.current_track
        await self._notification.render(
            track.display_name if track else None,
            self.is_playing,
        )

    # === 狀態查詢 ===

    def get_status(self) -> dict:
        """
        取得服務完整狀態
        """
        stats = self.cache.stats()
        track = self.current_track
        return {
            "is_closed": self._closed,
            "is_playing": self.is_playing,
            "state": self.engine.status.value,
            "current_track": track,
            "current_index": self.current_index,
            "elapsed": self.engine.state.format_time(),
            "playlist_size": len(self.playlist),
            "cached_tracks": stats.entries,
            "cached_size": stats.format_size(),
            "pending_downloads": stats.pending,
        }

    # === 內部方法 ===

    async def _resolve(self, track: Track) -> PlayableRef:
        """
        決定播放來源：快取 → 串流 → 直接播放
        """
        cached_file: Optional[Path] = None

        if self.cache.is_cached(track.id) or track.is_cached:
            try:
                cached_file = await self.cache.materialize(track)
            except MaterializationError as e:
                logger.warning(f"無法使用快取，改為串流: {e.message}")
        elif track.is_remote:
            self.cache.schedule_one(track)

        return self.resolver.resolve(track, cached_file)

    # === 清理 ===

    async def shutdown(self) -> None:
        """
        釋放所有資源（程式結束時呼叫，可重複呼叫）

        取消訂閱 → 釋放播放後端 → 停止背景下載並清空快取 → 關閉下載器 → 移除通知
        """
        if self._closed:
            return
        self._closed = True

        self.events.clear()
        self._listener_unsubscribe = None
        self._notification_unsubscribe = None

        try:
            await self.engine.release()
        except Exception as e:
            logger.error(f"釋放播放後端失敗: {e}")

        await self.cache.close()

        if self._http_fetcher is not None:
            await self._http_fetcher.close()

        if self._notification is not None:
            self._notification.set_command_handler(None)
            await self._notification.hide()
            self._notification = None

        self._listener = None
        logger.info("MusicService 已關閉")
