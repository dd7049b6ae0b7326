"""
播放引擎

整合播放控制與狀態機：
- 播放控制（指定索引、播放、暫停、停止、上/下一首）
- 狀態追蹤（使用 PlaybackState）
- 歌曲自然結束時自動播放下一首，最後一首結束就停止（不循環）
- 事件發送（TrackChanged / StateChanged）

所有操作都在前景事件循環上依序執行；後端的結束回調可能來自其他線程，
會透過 call_soon_threadsafe 轉回事件循環。
"""

import asyncio
from typing import Awaitable, Callable, Optional, Set, TYPE_CHECKING
from loguru import logger

from .events import EventChannel, StateChanged, TrackChanged
from .playlist import Playlist
from .resolver import PlayableRef
from .state import EngineState, PlaybackState
from .track import Track
from ..utils.errors import BackendLoadError, InvalidIndexError

if TYPE_CHECKING:
    from ..backend.base import PlaybackBackend

RefResolver = Callable[[Track], Awaitable[PlayableRef]]


class PlaybackEngine:
    """
    播放引擎

    使用方式：
        engine = PlaybackEngine(backend, playlist, resolve=my_resolver)
        engine.events.subscribe(handler)

        await engine.play_at(0)
        await engine.pause()
        await engine.next()
    """

    def __init__(
        self,
        backend: "PlaybackBackend",
        playlist: Playlist,
        resolve: RefResolver,
        events: Optional[EventChannel] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Args:
            backend: 播放後端
            playlist: 播放清單（與 MusicService 共用）
            resolve: 取得歌曲播放來源的函數
            events: 事件通道（可選）
            loop: 事件循環（可選，會自動取得）
        """
        self.backend = backend
        self.playlist = playlist
        self._resolve = resolve
        self.events = events if events is not None else EventChannel()
        self.state = PlaybackState()

        # 事件循環（若未提供則嘗試取得當前運行中的循環）
        self._loop = loop or asyncio.get_running_loop()

        # 最後一次通知出去的播放狀態，只在改變時發送 StateChanged
        self._reported_playing = False

        # 載入期間會 await，避免兩個指令交錯改動狀態機
        self._command_lock = asyncio.Lock()

        self._end_tasks: Set[asyncio.Task] = set()
        self._released = False

        # 每次後端成功載入就加一，用來辨認過期的結束通知
        self._load_serial = 0

        self.backend.set_finished_callback(self._on_backend_finished)

    # === 屬性 ===

    @property
    def status(self) -> EngineState:
        return self.state.status

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def current_index(self) -> int:
        return self.playlist.current_index

    @property
    def current_track(self) -> Optional[Track]:
        return self.playlist.current

    # === 播放控制 ===

    async def play_at(self, index: int) -> Optional[Track]:
        """
        播放指定索引的歌曲

        索引超出範圍時靜默忽略。載入失敗時記錄錯誤並維持原本的狀態。
        事件在釋放指令鎖之後才發送，監聽者可以在回調中再下指令。

        Returns:
            開始播放的歌曲，沒有播放則返回 None
        """
        async with self._command_lock:
            track = await self._play_at(index)

        if track is not None:
            await self.events.emit(TrackChanged(track, index))
            await self._report_state()
        return track

    async def _play_at(self, index: int) -> Optional[Track]:
        try:
            self._check_index(index)
        except InvalidIndexError as e:
            logger.debug(f"忽略播放請求: {e.message}")
            return None

        track = self.playlist[index]
        ref = await self._resolve(track)

        previous_status = self.state.status
        previous_id = self.state.current_track_id

        self.state.prepare(track.id)
        try:
            await self.backend.load(ref)
        except BackendLoadError as e:
            logger.error(f"載入失敗: {track.display_name} - {e.message}")
            self.state.restore(previous_status, previous_id)
            return None

        self._load_serial += 1
        self.playlist.select(index)
        self.state.start()
        await self.backend.play()

        source = "快取" if ref.is_cached else ref.kind.value
        logger.info(f"開始播放 [{index + 1}/{len(self.playlist)}] ({source}): {track.display_name}")
        return track

    async def play(self) -> bool:
        """
        恢復播放

        Returns:
            是否有改變狀態
        """
        async with self._command_lock:
            if not self.state.is_paused:
                return False
            await self.backend.play()
            self.state.resume()
            logger.debug("已恢復")

        await self._report_state()
        return True

    async def pause(self) -> bool:
        """
        暫停播放

        Returns:
            是否有改變狀態
        """
        async with self._command_lock:
            if not self.state.is_playing:
                return False
            await self.backend.pause()
            self.state.pause()
            logger.debug("已暫停")

        await self._report_state()
        return True

    async def toggle_pause(self) -> bool:
        """
        切換暫停/播放狀態

        Returns:
            切換後是否為播放中
        """
        if self.state.is_paused:
            await self.play()
        else:
            await self.pause()
        return self.state.is_playing

    async def next(self) -> Optional[Track]:
        """
        播放下一首（最後一首時不做任何事）
        """
        if not self.playlist.has_next():
            logger.debug("沒有下一首了")
            return None
        return await self.play_at(self.playlist.current_index + 1)

    async def previous(self) -> Optional[Track]:
        """
        播放上一首（第一首時不做任何事）
        """
        if not self.playlist.has_previous():
            logger.debug("沒有上一首了")
            return None
        return await self.play_at(self.playlist.current_index - 1)

    async def stop(self) -> None:
        """
        停止播放並重置狀態
        """
        async with self._command_lock:
            await self._stop()
            logger.debug("已停止")

        await self._report_state()

    async def _stop(self) -> None:
        await self.backend.stop()
        self.state.stop()
        self.playlist.reset()

    async def release(self) -> None:
        """
        釋放播放後端（之後引擎不可再使用）
        """
        if self._released:
            return
        self._released = True
        self.backend.set_finished_callback(None)
        for task in list(self._end_tasks):
            task.cancel()
        await self.backend.release()
        self.state.stop()
        self.playlist.reset()
        logger.debug("播放引擎已釋放")

    # === 歌曲結束 ===

    def _on_backend_finished(self, error: Optional[Exception]) -> None:
        """
        播放完成的回調（由播放後端呼叫）

        注意：可能在另一個線程中執行
        """
        if error:
            logger.error(f"播放錯誤: {error}")

        if self._released:
            return

        serial = self._load_serial
        self._loop.call_soon_threadsafe(self._spawn_end_handler, serial)

    def _spawn_end_handler(self, serial: int) -> None:
        task = self._loop.create_task(self.handle_track_ended(serial))
        self._end_tasks.add(task)
        task.add_done_callback(self._end_tasks.discard)

    async def handle_track_ended(self, serial: Optional[int] = None) -> None:
        """
        處理歌曲自然結束

        有下一首就自動播放，否則停止並回到 IDLE。
        與其他指令共用指令鎖；載入新歌期間收到的舊歌結束通知會被丟棄。

        Args:
            serial: 結束通知發出時的載入序號（None 表示不檢查）
        """
        track = None
        index = -1

        async with self._command_lock:
            if self.state.status is not EngineState.PLAYING:
                logger.debug(f"忽略結束事件（目前狀態 {self.state.status.value}）")
                return
            if serial is not None and serial != self._load_serial:
                logger.debug("忽略過期的結束事件")
                return

            logger.debug("歌曲播放結束")
            self.state.end()

            if self.playlist.has_next():
                index = self.playlist.current_index + 1
                track = await self._play_at(index)
                if track is None:
                    logger.warning("下一首載入失敗，停止播放")
            else:
                logger.info("播放清單已結束")

            if track is None:
                await self._stop()

        if track is not None:
            await self.events.emit(TrackChanged(track, index))
        await self._report_state()

    # === 內部方法 ===

    def _check_index(self, index: int) -> None:
        if not self.playlist.in_bounds(index):
            raise InvalidIndexError(index, len(self.playlist))

    async def _report_state(self) -> None:
        playing = self.state.is_playing
        if playing == self._reported_playing:
            return
        self._reported_playing = playing
        await self.events.emit(StateChanged(playing))
