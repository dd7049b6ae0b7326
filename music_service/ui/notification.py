"""
通知列橋接 - UI 層

兩個方向：
- 服務 → 通知：render(title, is_playing) 更新標題與播放/暫停圖示
- 通知 → 服務：四個傳輸指令 PLAY / PAUSE / NEXT / PREVIOUS

實際的平台通知元件不在本模組範圍內，這裡只定義資料格式與指令對應。
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple, TypeAlias
from loguru import logger

from ..constants import NOTIFICATION_APP_NAME, NOTIFICATION_IDLE_TEXT


class TransportCommand(Enum):
    PLAY = "ACTION_PLAY"
    PAUSE = "ACTION_PAUSE"
    NEXT = "ACTION_NEXT"
    PREVIOUS = "ACTION_PREVIOUS"


# 指令處理函數
CommandHandler: TypeAlias = Callable[[TransportCommand], Awaitable[None]]


@dataclass(frozen=True)
class NotificationSnapshot:
    """
    通知的顯示資料

    按鈕列固定為 [上一首, 播放/暫停, 下一首]，中間按鈕依播放狀態切換。
    """
    app_name: str
    content_text: str
    is_playing: bool
    actions: Tuple[TransportCommand, ...]

    @classmethod
    def build(cls, title: Optional[str], is_playing: bool) -> "NotificationSnapshot":
        toggle = TransportCommand.PAUSE if is_playing else TransportCommand.PLAY
        return cls(
            app_name=NOTIFICATION_APP_NAME,
            content_text=title or NOTIFICATION_IDLE_TEXT,
            is_playing=is_playing,
            actions=(TransportCommand.PREVIOUS, toggle, TransportCommand.NEXT),
        )

    @property
    def icon(self) -> str:
        return "⏸️" if self.is_playing else "▶️"


class NotificationBridge:
    """
    通知列橋接基類

    子類別覆寫 show() 把 NotificationSnapshot 畫到實際的通知元件上；
    使用者按下按鈕時呼叫 press() 或 dispatch()。
    """

    def __init__(self, command_handler: Optional[CommandHandler] = None):
        """
        Args:
            command_handler: 指令處理函數（通常是 MusicService.handle_command）
        """
        self.command_handler = command_handler
        self.snapshot: Optional[NotificationSnapshot] = None

    def set_command_handler(self, handler: Optional[CommandHandler]) -> None:
        self.command_handler = handler

    # === 服務 → 通知 ===

    async def render(self, title: Optional[str], is_playing: bool) -> None:
        """更新通知的標題與播放/暫停圖示"""
        snapshot = NotificationSnapshot.build(title, is_playing)
        if snapshot == self.snapshot:
            return
        self.snapshot = snapshot
        await self.show(snapshot)

    async def show(self, snapshot: NotificationSnapshot) -> None:
        """實際顯示（子類別覆寫）"""

    async def hide(self) -> None:
        """移除通知（服務關閉時呼叫）"""
        self.snapshot = None

    # === 通知 → 服務 ===

    async def dispatch(self, command: TransportCommand) -> None:
        """
        轉送傳輸指令

        Args:
            command: 使用者按下的按鈕
        """
        logger.debug(f"[NotificationBridge] 按鈕點擊: {command.name}")

        if self.command_handler is None:
            logger.warning("[NotificationBridge] 未設置 command_handler")
            return

        try:
            await self.command_handler(command)
        except Exception as e:
            logger.exception(f"[NotificationBridge] 指令執行失敗: {command.name}, {e}")

    async def press(self, action: str) -> None:
        """
        以 action 字串轉送指令（例如 "ACTION_NEXT"）

        未知的 action 會被忽略。
        """
        try:
            command = TransportCommand(action)
        except ValueError:
            logger.warning(f"[NotificationBridge] 未知的 action: {action}")
            return
        await self.dispatch(command)


class LoggingNotificationBridge(NotificationBridge):
    """把通知內容輸出到 log 的橋接（主控台模式與測試使用）"""

    def __init__(self, command_handler: Optional[CommandHandler] = None):
        super().__init__(command_handler)
        self.render_count = 0

    async def show(self, snapshot: NotificationSnapshot) -> None:
        self.render_count += 1
        buttons = " ".join(action.name.lower() for action in snapshot.actions)
        logger.info(f"[{snapshot.app_name}] {snapshot.icon} {snapshot.content_text}  [{buttons}]")

    async def hide(self) -> None:
        await super().hide()
        logger.debug("[NotificationBridge] 通知已移除")
