"""
Track / 來源判斷測試
"""

import pytest

from music_service.constants import UNKNOWN_ARTIST
from music_service.core.track import SourceKind, Track, classify, format_extension


@pytest.mark.parametrize(
    "locator, expected",
    [
        ("https://cdn.example.com/a.mp3", SourceKind.REMOTE),
        ("HTTP://cdn.example.com/a.mp3", SourceKind.REMOTE),
        ("content://media/external/audio/7", SourceKind.CONTENT_HANDLE),
        ("file:///music/a.flac", SourceKind.CONTENT_HANDLE),
        ("/music/a.flac", SourceKind.LOCAL),
        ("relative/a.ogg", SourceKind.LOCAL),
        ("C:\\music\\a.mp3", SourceKind.LOCAL),
    ],
)
def test_classify(locator, expected):
    assert classify(locator) is expected


def test_format_extension():
    assert format_extension("song.mp3") == "MP3"
    assert format_extension("archive.tar.flac") == "FLAC"
    assert format_extension("noext") == ""
    assert format_extension(".hidden") == ""


def test_from_path_uses_absolute_path_as_id(tmp_path):
    path = tmp_path / "song.ogg"
    track = Track.from_path(str(path))

    assert track.id == str(path.absolute())
    assert track.locator == track.id
    assert track.display_name == "song.ogg"
    assert track.source_kind is SourceKind.LOCAL
    assert track.format_ext == "OGG"
    assert track.artist == UNKNOWN_ARTIST
    assert not track.is_remote


def test_from_uri_remote_and_content_handle():
    remote = Track.from_uri("https://cdn.example.com/x.mp3", "x.mp3")
    handle = Track.from_uri("content://media/audio/1", "Song.wav")

    assert remote.is_remote
    assert remote.id == "https://cdn.example.com/x.mp3"
    assert handle.source_kind is SourceKind.CONTENT_HANDLE
    assert handle.format_ext == "WAV"


def test_from_entry_accepts_string_kind_and_artist():
    track = Track.from_entry({
        "display_name": "Track.m4a",
        "source_kind": "remote",
        "locator": "https://cdn.example.com/t",
        "artist": "Someone",
    })

    assert track.source_kind is SourceKind.REMOTE
    assert track.artist == "Someone"
    assert track.format_ext == "M4A"


def test_from_entry_infers_kind_when_missing():
    track = Track.from_entry({"locator": "https://cdn.example.com/auto.mp3"})

    assert track.is_remote
    assert track.display_name == "auto.mp3"


def test_cache_cell_first_write_wins():
    track = Track.from_uri("https://cdn.example.com/a.mp3", "a.mp3")

    assert track.store_bytes(b"first") is True
    assert track.store_bytes(b"second") is False
    assert track.cached_bytes == b"first"
    assert track.is_cached

    track.clear_cache()
    assert track.cached_bytes is None
    assert not track.is_cached


def test_local_track_cannot_hold_cache(tmp_path):
    track = Track.from_path(str(tmp_path / "a.mp3"))

    with pytest.raises(ValueError):
        track.store_bytes(b"data")


def test_equality_ignores_cache():
    a = Track.from_uri("https://cdn.example.com/a.mp3", "a.mp3")
    b = Track.from_uri("https://cdn.example.com/a.mp3", "a.mp3")
    a.store_bytes(b"data")

    assert a == b
