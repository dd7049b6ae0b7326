import pytest

from music_service.utils.decorators import absorb_errors, ensure_open, log_operation
from music_service.utils.errors import FetchError, InvalidIndexError, ServiceClosedError


class Dummy:
    def __init__(self):
        self._closed = False

    @ensure_open
    @absorb_errors
    async def fail(self, error):
        raise error

    @ensure_open
    @log_operation("測試操作")
    async def echo(self, value):
        return value


async def test_music_errors_are_absorbed():
    dummy = Dummy()

    assert await dummy.fail(FetchError("boom")) is None
    assert await dummy.fail(InvalidIndexError(3, 2)) is None


async def test_other_errors_propagate():
    with pytest.raises(KeyError):
        await Dummy().fail(KeyError("x"))


async def test_closed_service_raises():
    dummy = Dummy()
    dummy._closed = True

    with pytest.raises(ServiceClosedError) as exc:
        await dummy.echo(1)

    assert exc.value.operation == "echo"
    assert "echo()" in str(exc.value)


async def test_log_operation_returns_result():
    assert await Dummy().echo(42) == 42


def test_invalid_index_message():
    error = InvalidIndexError(5, 3)

    assert str(error) == "Index 5 out of range (playlist size 3)"
