"""
播放清單測試
"""

from music_service.core.playlist import Playlist

from conftest import remote


def make(n=3):
    return [remote(f"{i}.mp3") for i in range(n)]


def test_replace_resets_index():
    playlist = Playlist(make())
    playlist.select(2)

    old = playlist.replace(make(2))

    assert len(old) == 3
    assert playlist.current_index == -1
    assert playlist.current is None
    assert len(playlist) == 2


def test_replace_keep_index_only_when_in_bounds():
    playlist = Playlist(make())
    playlist.select(1)

    playlist.replace(make(3), keep_index=True)
    assert playlist.current_index == 1

    playlist.replace(make(1), keep_index=True)
    assert playlist.current_index == -1


def test_append_keeps_current_index():
    playlist = Playlist(make(2))
    playlist.select(1)

    index = playlist.append(remote("new.mp3"))

    assert index == 2
    assert playlist.current_index == 1
    assert playlist[2].display_name == "new.mp3"


def test_select_out_of_range_leaves_state():
    playlist = Playlist(make(2))
    playlist.select(0)

    assert playlist.select(5) is None
    assert playlist.select(-1) is None
    assert playlist.current_index == 0


def test_navigation_bounds():
    playlist = Playlist(make(2))

    # 尚未選擇時，下一首是第 0 首
    assert playlist.has_next()
    assert not playlist.has_previous()

    playlist.select(1)
    assert not playlist.has_next()
    assert playlist.has_previous()


def test_tracks_returns_copy():
    playlist = Playlist(make(2))
    tracks = playlist.tracks
    tracks.clear()

    assert len(playlist) == 2
    assert [t.display_name for t in playlist] == ["0.mp3", "1.mp3"]


def test_empty_playlist():
    playlist = Playlist()

    assert playlist.is_empty
    assert not playlist.in_bounds(0)
    assert not playlist.has_next()
