"""
FFplay 後端測試（不需要真的安裝 ffplay）
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from music_service.backend import ffplay
from music_service.backend.ffplay import FFplayBackend, find_ffplay
from music_service.core.resolver import PlayableRef, RefKind
from music_service.utils.errors import BackendLoadError


def test_find_ffplay_from_path(monkeypatch):
    monkeypatch.setattr(ffplay.shutil, "which", lambda name: f"/usr/bin/{name}")

    assert find_ffplay() == "/usr/bin/ffplay"


def test_find_ffplay_prefers_configured_file(tmp_path, monkeypatch):
    binary = tmp_path / "ffplay"
    binary.write_text("")
    monkeypatch.setattr(ffplay.shutil, "which", lambda name: None)

    assert find_ffplay(str(binary)) == str(binary)


def test_find_ffplay_missing(monkeypatch):
    monkeypatch.setattr(ffplay.shutil, "which", lambda name: None)

    assert find_ffplay("/nowhere/ffplay") is None


def test_build_args_includes_extra_args():
    backend = FFplayBackend(ffplay_path="ffplay", extra_args=["-volume", "50"])
    args = backend._build_args(PlayableRef(RefKind.DIRECT, "/music/a.mp3", "a"))

    assert args[0] == "ffplay"
    assert "-nodisp" in args and "-autoexit" in args
    assert args[-3:] == ["-volume", "50", "/music/a.mp3"]


async def test_missing_local_file_fails_fast(tmp_path):
    backend = FFplayBackend(ffplay_path=str(tmp_path / "no-ffplay"))
    ref = PlayableRef(RefKind.DIRECT, str(tmp_path / "missing.mp3"), "x")

    with pytest.raises(BackendLoadError):
        await backend.load(ref)
    assert not backend.is_playing


async def test_missing_binary_is_load_error(tmp_path):
    song = tmp_path / "a.mp3"
    song.write_bytes(b"data")
    backend = FFplayBackend(ffplay_path=str(tmp_path / "no-ffplay"))

    with pytest.raises(BackendLoadError):
        await backend.load(PlayableRef(RefKind.CACHED_FILE, str(song), "a"))


async def test_released_backend_refuses_load(tmp_path):
    backend = FFplayBackend()
    await backend.release()

    with pytest.raises(BackendLoadError):
        await backend.load(PlayableRef(RefKind.STREAM, "https://cdn.example.com/a.mp3", "a"))


async def test_controls_without_process_are_noops():
    backend = FFplayBackend()

    await backend.play()
    await backend.pause()
    await backend.stop()

    assert not backend.is_playing


async def test_watch_drains_stderr_before_reporting_end():
    backend = FFplayBackend()
    finished = []
    backend.set_finished_callback(finished.append)

    stderr = asyncio.StreamReader()
    stderr.feed_data(b"[mp3 @ 0x1] skipping frame\n" * 2000)
    stderr.feed_eof()
    proc = Mock(stderr=stderr, wait=AsyncMock(return_value=0))
    backend._proc = proc

    await backend._watch(proc)

    assert stderr.at_eof()
    assert finished == [None]
    assert backend._proc is None
