"""Message channels carrying bridge JSON text between the two sides."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import aiohttp
from aiohttp import web

_logger = logging.getLogger(__name__)


class BridgeChannel(Protocol):
    """One side of a bidirectional, ordered text channel.

    ``receive`` returns ``None`` once the channel is closed.
    """

    async def send(self, text: str) -> None:
        ...

    async def receive(self) -> str | None:
        ...

    async def close(self) -> None:
        ...


_CLOSED = object()


class MemoryChannel:
    """In-process channel endpoint backed by two asyncio queues."""

    def __init__(self, inbox: asyncio.Queue[object], outbox: asyncio.Queue[object]) -> None:
        self._inbox = inbox
        self._outbox = outbox
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, text: str) -> None:
        if self._closed:
            raise ConnectionError("channel is closed")
        await self._outbox.put(text)

    async def receive(self) -> str | None:
        if self._closed and self._inbox.empty():
            return None
        item = await self._inbox.get()
        if item is _CLOSED:
            self._closed = True
            return None
        if not isinstance(item, str):
            raise TypeError(f"channel carries text, got {type(item).__name__}")
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake both readers.
        await self._outbox.put(_CLOSED)
        await self._inbox.put(_CLOSED)


def create_memory_channel_pair() -> tuple[MemoryChannel, MemoryChannel]:
    """Return ``(host_side, surface_side)`` connected endpoints."""
    host_to_surface: asyncio.Queue[object] = asyncio.Queue()
    surface_to_host: asyncio.Queue[object] = asyncio.Queue()
    host = MemoryChannel(inbox=surface_to_host, outbox=host_to_surface)
    surface = MemoryChannel(inbox=host_to_surface, outbox=surface_to_host)
    return host, surface


class WebSocketChannel:
    """Adapter over an aiohttp websocket (client or server side)."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse | web.WebSocketResponse) -> None:
        self._ws = ws

    async def send(self, text: str) -> None:
        await self._ws.send_str(text)

    async def receive(self) -> str | None:
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return str(msg.data)
            if msg.type == aiohttp.WSMsgType.BINARY:
                return bytes(msg.data).decode("utf-8", errors="replace")
            if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                return None
            if msg.type == aiohttp.WSMsgType.ERROR:
                _logger.debug("Websocket error: %s", self._ws.exception())
                return None

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()
