"""
播放狀態機測試
"""

from unittest.mock import patch

import pytest

from music_service.core.state import EngineState, InvalidTransition, PlaybackState


def test_full_cycle():
    state = PlaybackState()
    assert state.status is EngineState.IDLE

    state.prepare("a")
    assert state.status is EngineState.PREPARING
    assert state.current_track_id == "a"

    state.start()
    assert state.is_playing

    assert state.pause() is True
    assert state.is_paused
    assert state.pause() is False

    assert state.resume() is True
    assert state.is_playing
    assert state.resume() is False

    state.end()
    assert state.status is EngineState.ENDED

    state.stop()
    assert state.status is EngineState.IDLE
    assert state.current_track_id is None


def test_invalid_transition():
    state = PlaybackState()

    with pytest.raises(InvalidTransition):
        state.start()
    with pytest.raises(InvalidTransition):
        state.end()


def test_restore_after_failed_load():
    state = PlaybackState()
    state.prepare("a")
    state.start()

    state.prepare("b")
    state.restore(EngineState.PLAYING, "a")

    assert state.is_playing
    assert state.current_track_id == "a"


def test_elapsed_excludes_paused_time():
    state = PlaybackState()
    state.prepare("a")

    with patch("music_service.core.state.time.time", return_value=100.0):
        state.start()
    with patch("music_service.core.state.time.time", return_value=110.0):
        state.pause()
    with patch("music_service.core.state.time.time", return_value=150.0):
        assert state.elapsed == 10
        state.resume()
    with patch("music_service.core.state.time.time", return_value=155.0):
        assert state.elapsed == 15


def test_elapsed_zero_when_idle():
    assert PlaybackState().elapsed == 0


def test_format_time():
    state = PlaybackState()

    assert state.format_time(0) == "0:00"
    assert state.format_time(75) == "1:15"
    assert state.format_time(3725) == "1:02:05"
