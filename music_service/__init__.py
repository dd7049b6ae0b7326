"""
音樂服務模組

背景播放協調器，提供:
- 混合來源播放清單（本地檔案、內容識別、遠端 URL）
- 遠端歌曲背景下載到記憶體，離線也能繼續播放
- 單一背景 worker 依序下載，不重複下載
- 播放狀態機與自動下一首
- 通知列 / UI 事件同步
"""

# Core
from .core.track import Track, SourceKind
from .core.playlist import Playlist
from .core.state import PlaybackState, EngineState
from .core.events import TrackChanged, StateChanged, PlaybackListener
from .core.cache import MemoryCache
from .core.engine import PlaybackEngine
from .core.service import MusicService

# Backend
from .backend.base import PlaybackBackend
from .backend.ffplay import FFplayBackend, find_ffplay

# Fetcher
from .fetcher.http import HttpFetcher

# UI
from .ui.notification import (
    TransportCommand,
    NotificationSnapshot,
    NotificationBridge,
    LoggingNotificationBridge,
)

# Config
from .config import Settings

# Utils
from .utils.errors import (
    MusicError,
    FetchError,
    MaterializationError,
    InvalidIndexError,
    BackendLoadError,
    ServiceClosedError,
)

__all__ = [
    # Core
    "Track",
    "SourceKind",
    "Playlist",
    "PlaybackState",
    "EngineState",
    "TrackChanged",
    "StateChanged",
    "PlaybackListener",
    "MemoryCache",
    "PlaybackEngine",
    "MusicService",
    # Backend
    "PlaybackBackend",
    "FFplayBackend",
    "find_ffplay",
    # Fetcher
    "HttpFetcher",
    # UI
    "TransportCommand",
    "NotificationSnapshot",
    "NotificationBridge",
    "LoggingNotificationBridge",
    # Config
    "Settings",
    # Utils
    "MusicError",
    "FetchError",
    "MaterializationError",
    "InvalidIndexError",
    "BackendLoadError",
    "ServiceClosedError",
]
