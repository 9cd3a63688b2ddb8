"""Surface-side bridge endpoint.

Plays the rendering surface's half of the protocol: emits view events,
proxies fetches through the host with a per-request timeout, and records
the commands it receives. Used for headless surfaces and in tests.
"""

from __future__ import annotations

import asyncio
import dataclasses
import itertools
import logging
from collections.abc import Callable
from typing import Any

from pysemob.bridge.channel import BridgeChannel
from pysemob.bridge.protocol import (
    BoundsChangedEvent,
    BridgeCommand,
    BridgeMessage,
    CenterChangedEvent,
    FetchEvent,
    FetchResponseCommand,
    LogEvent,
    MapErrorEvent,
    MapReadyEvent,
    MarkerSelectedEvent,
    RequestId,
    ZoomChangedEvent,
    parse_command,
)
from pysemob.exceptions import SemobBridgeError, SemobBridgeTimeoutError
from pysemob.models.bounds import MapBounds

_logger = logging.getLogger(__name__)


@dataclasses.dataclass
class PendingRequest:
    """A proxied fetch awaiting its ``fetchResponse``."""

    id: RequestId
    url: str
    deadline: float
    future: asyncio.Future[FetchResponseCommand]


class SurfaceEndpoint:
    """Surface half of the bridge.

    Parameters
    ----------
    channel : BridgeChannel
        Surface side of the channel.
    fetch_timeout : float
        Seconds to wait for a proxied fetch reply before rejecting it.
    """

    def __init__(self, channel: BridgeChannel, *, fetch_timeout: float = 15.0) -> None:
        self._channel = channel
        self._fetch_timeout = fetch_timeout
        self._ids = itertools.count(1)
        self._pending: dict[RequestId, PendingRequest] = {}
        self._commands: list[BridgeCommand] = []
        self._changed = asyncio.Condition()
        self._listeners: list[Callable[[BridgeCommand], None]] = []
        self._reader_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> SurfaceEndpoint:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def start(self) -> None:
        if self._reader_task is None:
            self._reader_task = asyncio.get_running_loop().create_task(self._read_loop())

    async def stop(self) -> None:
        reader = self._reader_task
        self._reader_task = None
        if reader is not None:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        for pending in self._pending.values():
            if not pending.future.done():
                pending.future.cancel()
        self._pending.clear()

    @property
    def commands(self) -> list[BridgeCommand]:
        """Commands received so far, excluding fetch replies."""
        return list(self._commands)

    def commands_of(self, type_: str) -> list[BridgeCommand]:
        return [cmd for cmd in self._commands if cmd.type == type_]

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def add_listener(self, listener: Callable[[BridgeCommand], None]) -> None:
        self._listeners.append(listener)

    async def wait_for_commands(self, type_: str, *, count: int = 1, timeout: float = 1.0) -> list[BridgeCommand]:
        """Wait until at least *count* commands of *type_* have arrived."""

        def _enough() -> bool:
            return len(self.commands_of(type_)) >= count

        async with self._changed:
            await asyncio.wait_for(self._changed.wait_for(_enough), timeout)
        return self.commands_of(type_)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def emit(self, event: BridgeMessage) -> None:
        await self._channel.send(event.to_json())

    async def ready(self) -> None:
        await self.emit(MapReadyEvent())

    async def error(self, message: str) -> None:
        await self.emit(MapErrorEvent(message=message))

    async def log(self, message: str, *, level: str = "info", tag: str | None = None) -> None:
        await self.emit(LogEvent(level=level, message=message, tag=tag))

    async def bounds_changed(self, bounds: MapBounds) -> None:
        await self.emit(BoundsChangedEvent(north=bounds.north, south=bounds.south, east=bounds.east, west=bounds.west))

    async def center_changed(self, lat: float, lon: float) -> None:
        await self.emit(CenterChangedEvent(lat=lat, lon=lon))

    async def zoom_changed(self, zoom: float) -> None:
        await self.emit(ZoomChangedEvent(zoom=zoom))

    async def select_bus(self, bus_id: str, line_code: str | None) -> None:
        await self.emit(MarkerSelectedEvent(kind="bus", id=bus_id, line_code=line_code))

    async def select_stop(self, stop_id: str) -> None:
        await self.emit(MarkerSelectedEvent(kind="stop", id=stop_id))

    # ------------------------------------------------------------------
    # Fetch proxy
    # ------------------------------------------------------------------

    async def fetch(self, url: str, *, timeout: float | None = None) -> FetchResponseCommand:
        """Ask the host to GET *url* and wait for the reply.

        Raises
        ------
        SemobBridgeTimeoutError
            If no reply arrives in time. The pending request is removed.
        """
        loop = asyncio.get_running_loop()
        budget = self._fetch_timeout if timeout is None else timeout
        request_id = next(self._ids)
        pending = PendingRequest(id=request_id, url=url, deadline=loop.time() + budget, future=loop.create_future())
        self._pending[request_id] = pending

        try:
            await self.emit(FetchEvent(id=request_id, url=url))
            return await asyncio.wait_for(pending.future, budget)
        except TimeoutError as exc:
            raise SemobBridgeTimeoutError(
                f"No reply for fetch {request_id} within {budget}s",
                request_id=request_id,
                url=url,
            ) from exc
        finally:
            if self._pending.get(request_id) is pending:
                del self._pending[request_id]

    # ------------------------------------------------------------------
    # Reader
    # ------------------------------------------------------------------

    async def _read_loop(self) -> None:
        while True:
            text = await self._channel.receive()
            if text is None:
                return
            try:
                command = parse_command(text)
            except SemobBridgeError as exc:
                _logger.warning("Ignoring host message: %s", exc)
                continue
            await self._handle(command)

    async def _handle(self, command: BridgeCommand) -> None:
        if isinstance(command, FetchResponseCommand):
            pending = self._pending.get(command.id)
            if pending is None:
                _logger.debug("Dropping reply for unknown or expired fetch %s", command.id)
                return
            if not pending.future.done():
                pending.future.set_result(command)
            return

        self._commands.append(command)
        for listener in list(self._listeners):
            try:
                listener(command)
            except Exception:
                _logger.debug("Surface listener failed for %s", command.type, exc_info=True)
        async with self._changed:
            self._changed.notify_all()
