"""Host-side bridge dispatcher.

Sends commands to the rendering surface, consumes its events, proxies the
network fetches the surface cannot make itself, and holds back entity
updates until the surface reports ``mapReady``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from pysemob._api.wfs import host_of, is_live_positions_url, sanitize_line_code, with_max_features
from pysemob._constants import FORBIDDEN_TEXT, INVALID_URL_TEXT, STATUS_BAD_REQUEST, STATUS_FORBIDDEN
from pysemob._redact import summarize_for_log
from pysemob.bridge.channel import BridgeChannel
from pysemob.bridge.protocol import (
    BridgeEvent,
    BridgeMessage,
    FetchEvent,
    FetchResponseCommand,
    HideLoadingCommand,
    LogEvent,
    MapErrorEvent,
    MapReadyEvent,
    RecenterCommand,
    SetBusRouteCommand,
    SetUserMarkerVisibleCommand,
    SetUserPositionCommand,
    ShowLoadingCommand,
    ShowToastCommand,
    UpdateDataCommand,
    parse_event,
)
from pysemob.config import SemobConfig
from pysemob.exceptions import SemobBridgeError
from pysemob.fetcher import FetchClient

_logger = logging.getLogger(__name__)
_surface_logger = logging.getLogger("pysemob.surface")

_SURFACE_LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "log": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

EventListener = Callable[[BridgeEvent], None]


class BridgeDispatcher:
    """Host side of the bridge protocol.

    Commands are fire-and-forget: they are queued and written to the
    channel in call order by a single writer task. Inbound events are read
    in order by a single reader task and handed to listeners.

    Usage::

        async with BridgeDispatcher(config, channel, fetcher) as bridge:
            bridge.add_listener(on_event)
            bridge.update_data(UpdateDataCommand(buses=[...]))
    """

    def __init__(self, config: SemobConfig, channel: BridgeChannel, fetcher: FetchClient) -> None:
        self._config = config
        self._channel = channel
        self._fetcher = fetcher
        self._outbound: asyncio.Queue[BridgeMessage | None] = asyncio.Queue()
        self._listeners: list[EventListener] = []
        self._pending_update: UpdateDataCommand | None = None
        self._ready = False
        self._ready_event = asyncio.Event()
        self._fetch_tasks: set[asyncio.Task[None]] = set()
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BridgeDispatcher:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        if self._writer_task is None:
            self._writer_task = loop.create_task(self._write_loop())
        if self._reader_task is None:
            self._reader_task = loop.create_task(self._read_loop())

    async def stop(self) -> None:
        """Flush queued commands, then stop both tasks and any proxied fetch."""
        for task in list(self._fetch_tasks):
            task.cancel()
        if self._fetch_tasks:
            await asyncio.gather(*self._fetch_tasks, return_exceptions=True)

        writer = self._writer_task
        self._writer_task = None
        if writer is not None:
            self._outbound.put_nowait(None)
            await writer

        reader = self._reader_task
        self._reader_task = None
        if reader is not None:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def pending_update(self) -> UpdateDataCommand | None:
        """The update held back until readiness, if any."""
        return self._pending_update

    async def wait_until_ready(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._ready_event.wait(), timeout)
            return True
        except TimeoutError:
            return False

    async def drain(self) -> None:
        """Wait until every queued command has been written."""
        await self._outbound.join()

    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Register a synchronous event listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def send(self, command: BridgeMessage) -> None:
        """Queue *command* for delivery."""
        self._outbound.put_nowait(command)

    def recenter(self, lat: float, lon: float, zoom: float) -> None:
        self.send(RecenterCommand(lat=lat, lon=lon, zoom=zoom))

    def set_user_position(self, lat: float, lon: float, zoom: float | None = None) -> None:
        self.send(SetUserPositionCommand(lat=lat, lon=lon, zoom=zoom))

    def set_user_marker_visible(self, visible: bool) -> None:
        self.send(SetUserMarkerVisibleCommand(visible=visible))

    def set_bus_route(self, line_code: str, lines: Sequence[dict[str, Any]] | None = None) -> None:
        """Show the route overlay for *line_code*; ``""`` clears it."""
        self.send(SetBusRouteCommand(line_code=sanitize_line_code(line_code), lines=list(lines) if lines is not None else None))

    def update_data(self, command: UpdateDataCommand) -> None:
        """Send an entity update, or hold it until the surface is ready.

        Only the most recent held update is kept.
        """
        if not self._ready:
            if self._pending_update is not None:
                _logger.debug("Superseding held updateData")
            self._pending_update = command
            return
        self.send(command)

    def show_loading(self, text: str = "", progress: float | None = None) -> None:
        self.send(ShowLoadingCommand(text=text, progress=progress))

    def hide_loading(self) -> None:
        self.send(HideLoadingCommand())

    def show_toast(self, message: str, duration_ms: int | None = None) -> None:
        duration = self._config.toast_duration_ms if duration_ms is None else duration_ms
        self.send(ShowToastCommand(message=message, duration_ms=duration))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def handle_message(self, text: str) -> None:
        """Decode and dispatch one inbound message.

        Undecodable or unknown messages are logged and ignored.
        """
        try:
            event = parse_event(text)
        except SemobBridgeError as exc:
            _logger.warning("Ignoring bridge message %s: %s", summarize_for_log(text), summarize_for_log(str(exc)))
            return

        if isinstance(event, MapReadyEvent):
            self._on_ready()
        elif isinstance(event, FetchEvent):
            self._start_fetch(event)
        elif isinstance(event, LogEvent):
            level = _SURFACE_LOG_LEVELS.get(event.level.lower(), logging.INFO)
            _surface_logger.log(level, "[%s] %s", event.tag or "surface", event.message)
        elif isinstance(event, MapErrorEvent):
            _logger.warning("Rendering surface reported an error: %s", event.message)

        self._notify(event)

    def _on_ready(self) -> None:
        first = not self._ready
        self._ready = True
        self._ready_event.set()
        pending = self._pending_update
        self._pending_update = None
        if pending is not None:
            self.send(pending)
        if first:
            _logger.debug("Rendering surface ready (flushed held update: %s)", pending is not None)

    def _notify(self, event: BridgeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.debug("Bridge listener failed for %s", event.type, exc_info=True)

    # ------------------------------------------------------------------
    # Fetch proxy
    # ------------------------------------------------------------------

    def _start_fetch(self, event: FetchEvent) -> None:
        task = asyncio.get_running_loop().create_task(self._proxy_fetch(event))
        self._fetch_tasks.add(task)
        task.add_done_callback(self._fetch_tasks.discard)

    async def _proxy_fetch(self, event: FetchEvent) -> None:
        try:
            allowed = host_of(event.url) in self._config.allowed_hosts
            url = with_max_features(event.url, self._config)
            live = is_live_positions_url(url, self._config)
        except ValueError as exc:
            _logger.warning("Refusing proxied fetch to invalid URL %s: %s", summarize_for_log(event.url), exc)
            self.send(FetchResponseCommand(id=event.id, ok=False, status=STATUS_BAD_REQUEST, body=INVALID_URL_TEXT))
            return
        if not allowed:
            _logger.warning("Refusing proxied fetch to disallowed host: %s", summarize_for_log(event.url))
            self.send(FetchResponseCommand(id=event.id, ok=False, status=STATUS_FORBIDDEN, body=FORBIDDEN_TEXT))
            return

        result = await self._fetcher.fetch(url, bypass_cache=live)
        _logger.debug("Proxied fetch %s -> %d (live=%s)", event.id, result.status, live)
        self.send(FetchResponseCommand(id=event.id, ok=result.ok, status=result.status, body=result.body))

    # ------------------------------------------------------------------
    # Channel loops
    # ------------------------------------------------------------------

    async def _read_loop(self) -> None:
        while True:
            text = await self._channel.receive()
            if text is None:
                _logger.debug("Bridge channel closed by surface")
                return
            self.handle_message(text)

    async def _write_loop(self) -> None:
        while True:
            message = await self._outbound.get()
            try:
                if message is None:
                    return
                await self._channel.send(message.to_json())
            except Exception:
                _logger.warning("Failed to deliver %s command", getattr(message, "type", "?"), exc_info=True)
            finally:
                self._outbound.task_done()
