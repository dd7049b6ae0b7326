"""
測試共用的假後端、假下載器與 fixture
"""

import asyncio
from typing import Dict, Iterable, List, Optional

import pytest

from music_service.backend.base import PlaybackBackend
from music_service.core.events import StateChanged, TrackChanged
from music_service.core.resolver import PlayableRef
from music_service.core.service import MusicService
from music_service.core.track import Track, SourceKind
from music_service.utils.errors import BackendLoadError, FetchError


class FakeBackend(PlaybackBackend):
    """記錄所有呼叫的播放後端"""

    def __init__(self):
        super().__init__()
        self.loaded: List[PlayableRef] = []
        self.current: Optional[PlayableRef] = None
        self.fail_targets: set = set()
        self.released = False
        self.stop_count = 0
        self._playing = False

        # load_gate 設定後，load 會停在這裡直到 gate.set()
        self.load_gate: Optional[asyncio.Event] = None
        self.loading = asyncio.Event()

    @property
    def is_playing(self) -> bool:
        return self._playing

    async def load(self, ref: PlayableRef) -> None:
        self.loading.set()
        if self.load_gate is not None:
            await self.load_gate.wait()
        if ref.target in self.fail_targets:
            raise BackendLoadError(f"cannot load {ref.target}", ref.target)
        self.loaded.append(ref)
        self.current = ref
        self._playing = False

    async def play(self) -> None:
        if self.current is not None:
            self._playing = True

    async def pause(self) -> None:
        self._playing = False

    async def stop(self) -> None:
        self.stop_count += 1
        self.current = None
        self._playing = False

    async def release(self) -> None:
        await self.stop()
        self.released = True

    def finish(self, error: Optional[Exception] = None) -> None:
        """模擬歌曲自然結束"""
        self._notify_finished(error)


class FakeFetcher:
    """
    假下載器

    - payloads: url -> bytes，未指定時回傳 b"audio:<url>"
    - failures: 這些 url 會拋出 FetchError
    - gate: 設定後每次下載都要等 gate.set()
    """

    def __init__(self, payloads: Optional[Dict[str, bytes]] = None, failures: Iterable[str] = ()):
        self.payloads = dict(payloads or {})
        self.failures = set(failures)
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.active = 0
        self.max_active = 0

    async def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            if url in self.failures:
                raise FetchError(f"boom: {url}", url=url)
            return self.payloads.get(url, b"audio:" + url.encode())
        finally:
            self.active -= 1


class EventRecorder:
    """訂閱者：記錄收到的事件"""

    def __init__(self):
        self.events: list = []

    async def __call__(self, event) -> None:
        self.events.append(event)

    @property
    def track_changes(self) -> List[TrackChanged]:
        return [e for e in self.events if isinstance(e, TrackChanged)]

    @property
    def state_changes(self) -> List[bool]:
        return [e.is_playing for e in self.events if isinstance(e, StateChanged)]

    def clear(self) -> None:
        self.events.clear()


def remote(name: str) -> Track:
    return Track.from_uri(f"https://cdn.example.com/{name}", name)


def local(tmp_path, name: str) -> Track:
    path = tmp_path / name
    path.write_bytes(b"local audio")
    return Track.from_path(str(path))


def content(name: str) -> Track:
    return Track.from_entry({
        "display_name": name,
        "source_kind": SourceKind.CONTENT_HANDLE,
        "locator": f"content://media/external/audio/{name}",
    })


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
async def service(backend, fetcher, tmp_path):
    svc = MusicService(backend=backend, fetcher=fetcher, cache_dir=str(tmp_path / "cache"))
    yield svc
    await svc.shutdown()
