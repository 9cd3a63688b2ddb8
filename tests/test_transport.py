from __future__ import annotations

import aiohttp
import pytest
from aiohttp import test_utils, web

from pysemob._transport import AiohttpTransport
from pysemob.bridge.channel import WebSocketChannel
from pysemob.exceptions import SemobOversizedResponseError, SemobTransportError


async def _ok(request: web.Request) -> web.Response:
    return web.json_response({"type": "FeatureCollection", "features": [], "ua": request.headers.get("user-agent")})


async def _declared_large(_request: web.Request) -> web.Response:
    return web.Response(body=b"x" * 2000, content_type="application/json")


async def _streamed_large(request: web.Request) -> web.StreamResponse:
    resp = web.StreamResponse()
    resp.enable_chunked_encoding()
    await resp.prepare(request)
    for _ in range(3):
        await resp.write(b"y" * 600)
    await resp.write_eof()
    return resp


async def _latin1(_request: web.Request) -> web.Response:
    return web.Response(body="Paradão".encode("latin-1"), content_type="text/plain", charset="latin-1")


async def _echo_ws(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    channel = WebSocketChannel(ws)
    await channel.send('{"type":"mapReady"}')
    text = await channel.receive()
    await channel.send(f"echo:{text}")
    await channel.close()
    return ws


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/ok", _ok)
    app.router.add_get("/declared", _declared_large)
    app.router.add_get("/streamed", _streamed_large)
    app.router.add_get("/latin1", _latin1)
    app.router.add_get("/ws", _echo_ws)
    return app


@pytest.mark.asyncio
async def test_get_text_returns_status_and_body() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        response = await transport.get_text(str(server.make_url("/ok")), max_bytes=10_000)

        assert response.status == 200
        assert '"FeatureCollection"' in response.body
        assert "pysemob" in response.body


@pytest.mark.asyncio
async def test_declared_length_over_limit_is_rejected() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        with pytest.raises(SemobOversizedResponseError):
            await transport.get_text(str(server.make_url("/declared")), max_bytes=1000)


@pytest.mark.asyncio
async def test_streamed_body_over_limit_is_rejected() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        with pytest.raises(SemobOversizedResponseError):
            await transport.get_text(str(server.make_url("/streamed")), max_bytes=1000)

        response = await transport.get_text(str(server.make_url("/streamed")), max_bytes=5000)
        assert len(response.body) == 1800


@pytest.mark.asyncio
async def test_declared_charset_is_used() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        response = await transport.get_text(str(server.make_url("/latin1")), max_bytes=1000)

        assert response.body == "Paradão"


@pytest.mark.asyncio
async def test_connection_failure_maps_to_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server:
        url = str(server.make_url("/ok"))
    async with aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        with pytest.raises(SemobTransportError) as excinfo:
            await transport.get_text(url, max_bytes=1000)

        assert not isinstance(excinfo.value, SemobOversizedResponseError)


@pytest.mark.asyncio
async def test_websocket_channel_round_trip() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        async with session.ws_connect(server.make_url("/ws")) as ws:
            channel = WebSocketChannel(ws)

            assert await channel.receive() == '{"type":"mapReady"}'
            await channel.send("ping")
            assert await channel.receive() == "echo:ping"
            assert await channel.receive() is None
