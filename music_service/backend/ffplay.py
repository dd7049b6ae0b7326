"""
FFplay 播放後端

每首歌啟動一個 ffplay 子程序：
- 使用 asyncio.create_subprocess_exec，不阻塞事件循環
- 暫停 / 恢復透過 SIGSTOP / SIGCONT（僅 POSIX）
- 啟動後觀察一小段時間，立即異常結束視為載入失敗
- 新歌成功啟動後才停止舊的程序，載入失敗時原本的播放不受影響

ffplay 搜尋順序：
1. 設定檔指定的路徑（FFPLAY_PATH）
2. 系統 PATH 中的 ffplay
"""

import asyncio
import shutil
import signal
from pathlib import Path
from typing import Optional, Sequence
from loguru import logger

from .base import PlaybackBackend
from ..constants import FFPLAY_BINARY, FFPLAY_STARTUP_PROBE
from ..core.resolver import PlayableRef, RefKind
from ..core.track import SourceKind, classify
from ..utils.errors import BackendLoadError


def find_ffplay(preferred: Optional[str] = None) -> Optional[str]:
    """
    尋找 ffplay 執行檔

    Args:
        preferred: 優先使用的路徑

    Returns:
        可執行路徑，找不到返回 None
    """
    if preferred:
        if Path(preferred).is_file():
            return preferred
        found = shutil.which(preferred)
        if found:
            return found
        logger.warning(f"指定的 ffplay 不存在: {preferred}")

    found = shutil.which(FFPLAY_BINARY)
    if found:
        logger.info(f"使用系統 ffplay: {found}")
    return found


class FFplayBackend(PlaybackBackend):
    """
    ffplay 子程序播放後端

    使用方式：
        backend = FFplayBackend(ffplay_path=find_ffplay())
        await backend.load(ref)
        await backend.pause()
        await backend.play()
        await backend.release()
    """

    def __init__(
        self,
        ffplay_path: str = FFPLAY_BINARY,
        startup_probe: float = FFPLAY_STARTUP_PROBE,
        extra_args: Sequence[str] = (),
    ):
        """
        Args:
            ffplay_path: ffplay 執行檔路徑
            startup_probe: 啟動後觀察多久（秒）
            extra_args: 額外的 ffplay 參數（例如 -volume 50）
        """
        super().__init__()
        self.ffplay_path = ffplay_path
        self.startup_probe = startup_probe
        self.extra_args = list(extra_args)

        self._proc: Optional[asyncio.subprocess.Process] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._paused = False
        self._released = False

    @property
    def is_playing(self) -> bool:
        return self._proc is not None and self._proc.returncode is None and not self._paused

    def _build_args(self, ref: PlayableRef) -> list[str]:
        return [
            self.ffplay_path,
            "-nodisp",
            "-autoexit",
            "-loglevel", "error",
            *self.extra_args,
            ref.target,
        ]

    async def load(self, ref: PlayableRef) -> None:
        if self._released:
            raise BackendLoadError("後端已釋放", ref.target)

        # 本地檔案先檢查，省下啟動程序的時間
        if ref.kind is not RefKind.STREAM and classify(ref.target) is SourceKind.LOCAL:
            if not Path(ref.target).exists():
                raise BackendLoadError(f"檔案不存在: {ref.target}", ref.target)

        args = self._build_args(ref)
        logger.debug(f"[ffplay] 執行指令: {' '.join(args)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise BackendLoadError(f"無法啟動 ffplay: {e}", ref.target) from e

        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=self.startup_probe)
        except asyncio.TimeoutError:
            returncode = None

        if returncode not in (None, 0):
            stderr = (await proc.stderr.read()).decode(errors="replace").strip()
            raise BackendLoadError(
                f"ffplay 載入失敗 (code {returncode}): {stderr or '無訊息'}", ref.target
            )

        old = self._proc
        self._proc = proc
        self._paused = False
        if old is not None:
            await self._terminate(old)

        self._watch_task = asyncio.create_task(self._watch(proc), name="ffplay_watch")
        logger.debug(f"[ffplay] 已載入: {ref.target}")

    async def _watch(self, proc: asyncio.subprocess.Process) -> None:
        """等待程序結束，只有「自然結束」才通知引擎"""
        await self._drain_stderr(proc)
        returncode = await proc.wait()

        # 已被 stop / 換歌取代
        if proc is not self._proc:
            return

        self._proc = None
        self._paused = False

        if returncode == 0:
            self._notify_finished(None)
        else:
            self._notify_finished(BackendLoadError(f"ffplay 異常結束 (code {returncode})"))

    @staticmethod
    async def _drain_stderr(proc: asyncio.subprocess.Process) -> None:
        """持續讀取 stderr 直到 EOF，避免管線塞滿讓 ffplay 卡住"""
        if proc.stderr is None:
            return
        async for line in proc.stderr:
            message = line.decode(errors="replace").rstrip()
            if message:
                logger.debug(f"[ffplay] {message}")

    async def play(self) -> None:
        if self._proc is None or not self._paused:
            return
        if self._signal(getattr(signal, "SIGCONT", None)):
            self._paused = False

    async def pause(self) -> None:
        if self._proc is None or self._paused:
            return
        if self._signal(getattr(signal, "SIGSTOP", None)):
            self._paused = True

    def _signal(self, sig: Optional[int]) -> bool:
        if sig is None:
            logger.warning("[ffplay] 此平台不支援暫停 / 恢復")
            return False
        try:
            self._proc.send_signal(sig)
        except ProcessLookupError:
            return False
        return True

    async def stop(self) -> None:
        proc, self._proc = self._proc, None
        self._paused = False
        if proc is not None:
            await self._terminate(proc)
            logger.debug("[ffplay] 已停止")

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        cont = getattr(signal, "SIGCONT", None)
        try:
            # 被 SIGSTOP 的程序要先恢復才收得到 SIGTERM
            if cont is not None:
                proc.send_signal(cont)
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=2)
        except asyncio.TimeoutError:
            logger.warning("[ffplay] 程序未回應，強制結束")
            proc.kill()
            await proc.wait()

    async def release(self) -> None:
        await self.stop()
        if self._watch_task is not None and not self._watch_task.done():
            self._watch_task.cancel()
        self._watch_task = None
        self._released = True
        logger.debug("[ffplay] 已釋放")
