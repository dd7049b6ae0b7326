"""
HttpFetcher 測試（本機 aiohttp 測試伺服器）
"""

import pytest
from aiohttp import web
from aiohttp import test_utils

from music_service.fetcher.http import HttpFetcher
from music_service.utils.errors import FetchError

PAYLOAD = b"\x00\x01audio" * 500


@pytest.fixture
async def server():
    async def song(request):
        return web.Response(body=PAYLOAD, content_type="audio/mpeg")

    async def missing(request):
        return web.Response(status=404)

    async def chunked(request):
        resp = web.StreamResponse()
        await resp.prepare(request)
        for _ in range(10):
            await resp.write(b"x" * 100)
        await resp.write_eof()
        return resp

    app = web.Application()
    app.router.add_get("/song.mp3", song)
    app.router.add_get("/missing.mp3", missing)
    app.router.add_get("/stream.mp3", chunked)

    server = test_utils.TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
async def fetcher():
    fetcher = HttpFetcher(chunk_size=256)
    yield fetcher
    await fetcher.close()


async def test_fetch_whole_body(server, fetcher):
    data = await fetcher(str(server.make_url("/song.mp3")))

    assert data == PAYLOAD


async def test_http_error_status(server, fetcher):
    with pytest.raises(FetchError) as exc:
        await fetcher.fetch(str(server.make_url("/missing.mp3")))

    assert exc.value.status == 404


async def test_declared_size_over_limit(server):
    fetcher = HttpFetcher(max_bytes=100)
    try:
        with pytest.raises(FetchError):
            await fetcher.fetch(str(server.make_url("/song.mp3")))
    finally:
        await fetcher.close()


async def test_streamed_size_over_limit(server):
    fetcher = HttpFetcher(max_bytes=500, chunk_size=100)
    try:
        with pytest.raises(FetchError):
            await fetcher.fetch(str(server.make_url("/stream.mp3")))
    finally:
        await fetcher.close()


async def test_non_http_url_rejected(fetcher):
    with pytest.raises(FetchError):
        await fetcher.fetch("content://media/audio/1")


async def test_connection_error(fetcher):
    port = test_utils.unused_port()

    with pytest.raises(FetchError):
        await fetcher.fetch(f"http://127.0.0.1:{port}/song.mp3")


async def test_external_session_is_not_closed(server):
    import aiohttp

    async with aiohttp.ClientSession() as session:
        fetcher = HttpFetcher(session=session)
        await fetcher.fetch(str(server.make_url("/song.mp3")))
        await fetcher.close()

        assert not session.closed
