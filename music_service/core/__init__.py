# Core module
from .track import Track, SourceKind, classify
from .resolver import SourceResolver, PlayableRef, RefKind
from .playlist import Playlist
from .state import PlaybackState, EngineState
from .events import EventChannel, TrackChanged, StateChanged, PlaybackListener
from .worker import CacheWorker
from .cache import MemoryCache, CacheStats
from .engine import PlaybackEngine
from .service import MusicService

__all__ = [
    "Track",
    "SourceKind",
    "classify",
    "SourceResolver",
    "PlayableRef",
    "RefKind",
    "Playlist",
    "PlaybackState",
    "EngineState",
    "EventChannel",
    "TrackChanged",
    "StateChanged",
    "PlaybackListener",
    "CacheWorker",
    "MemoryCache",
    "CacheStats",
    "PlaybackEngine",
    "MusicService",
]
