"""
音樂服務統一錯誤系統

所有錯誤都繼承自 MusicError，包含：
- message: 技術性錯誤訊息（給開發者 / log）
- user_message: 使用者友善的訊息（給 UI / 通知顯示）

除了 ServiceClosedError 之外，其餘錯誤都會在 MusicService 邊界被吸收並記錄，
不會拋給外部呼叫者。
"""

from typing import Optional


class MusicError(Exception):
    """音樂服務錯誤基類"""

    def __init__(self, message: str, user_message: Optional[str] = None):
        self.message = message
        self.user_message = user_message or message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class FetchError(MusicError):
    """下載遠端音訊失敗（網路錯誤、HTTP 狀態碼、超時）"""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(
            message=message,
            user_message="下載失敗，將改用串流播放"
        )


class MaterializationError(MusicError):
    """無法將快取寫成暫存檔（磁碟已滿、權限不足）"""

    def __init__(self, message: str, track_id: Optional[str] = None):
        self.track_id = track_id
        super().__init__(
            message=message,
            user_message="無法使用快取，將改用串流播放"
        )


class InvalidIndexError(MusicError):
    """播放索引超出範圍（邊界導航屬於正常操作，因此不會顯示給使用者）"""

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(
            message=f"Index {index} out of range (playlist size {size})",
            user_message=""
        )


class BackendLoadError(MusicError):
    """播放後端無法準備音訊來源"""

    def __init__(self, message: str, target: Optional[str] = None):
        self.target = target
        super().__init__(
            message=message,
            user_message="播放時發生錯誤"
        )


class ServiceClosedError(MusicError):
    """在 shutdown 之後仍呼叫服務（程式錯誤，不吸收）"""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            message=f"MusicService is shut down, cannot call {operation}()",
            user_message="播放服務已關閉"
        )
