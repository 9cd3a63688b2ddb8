"""Refresh coordinator.

Owns the polling cadence for live bus positions, the bounds-triggered
refresh of stops, the line dataset preload and the route overlay. Reacts to
view events from the rendering surface and pushes snapshots through the
bridge.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Iterable
from typing import Any

from pydantic import ValidationError

from pysemob._api.wfs import sanitize_line_code
from pysemob._geo import marker_size_for_zoom
from pysemob.bridge.dispatcher import BridgeDispatcher
from pysemob.bridge.protocol import (
    BoundsChangedEvent,
    BridgeEvent,
    CenterChangedEvent,
    MarkerSelectedEvent,
    UpdateDataCommand,
    UserLocation,
    ZoomChangedEvent,
)
from pysemob.config import SemobConfig
from pysemob.exceptions import SemobError
from pysemob.models.bounds import MapBounds
from pysemob.models.bus import Bus
from pysemob.models.line import Line
from pysemob.service import GeodataService
from pysemob.state.events import DataKind
from pysemob.state.policy import bounds_moved_significantly
from pysemob.state.store import SnapshotStore

_logger = logging.getLogger(__name__)

_FAILURE_MESSAGES: dict[DataKind, str] = {
    DataKind.BUSES: "Não foi possível atualizar os ônibus",
    DataKind.STOPS: "Não foi possível carregar as paradas",
    DataKind.LINES: "Não foi possível carregar as linhas",
}


class RefreshCoordinator:
    """Drives refreshes and keeps the rendering surface in sync.

    Per data kind the state moves ``idle -> fetching -> (idle | error)``.
    A failed refresh keeps the previous snapshot on screen and shows a
    toast; the next scheduled or triggered refresh tries again.

    Usage::

        async with RefreshCoordinator(config, service, bridge) as coordinator:
            ...
    """

    def __init__(
        self,
        config: SemobConfig,
        service: GeodataService,
        bridge: BridgeDispatcher,
        *,
        store: SnapshotStore | None = None,
    ) -> None:
        self._config = config
        self._service = service
        self._bridge = bridge
        self._store = store or SnapshotStore()

        self._only_active_buses = False
        self._selected_lines: tuple[str, ...] = ()
        self._style: dict[str, Any] = {}
        self._user_location: UserLocation | None = None
        self._view_bounds: MapBounds | None = None
        self._stops_bounds: MapBounds | None = None
        self._center: tuple[float, float] | None = None
        self._marker_size: int | None = None
        self._route_code = ""
        self._lines_source: list[Line] | None = None

        self._poll_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._unsubscribe: Any = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RefreshCoordinator:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def start(self, *, poll: bool = True) -> None:
        """Subscribe to surface events, preload lines and start polling."""
        if self._unsubscribe is None:
            self._unsubscribe = self._bridge.add_listener(self._on_event)
        self._spawn(self.preload_lines())
        if poll and self._poll_task is None:
            self._bridge.show_loading("Carregando dados")
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = list(self._tasks)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
            self._poll_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _poll_loop(self) -> None:
        first = True
        while True:
            await self.refresh_buses()
            if first:
                self._bridge.hide_loading()
                first = False
            await asyncio.sleep(self._config.poll_interval)

    # ------------------------------------------------------------------
    # Refreshes
    # ------------------------------------------------------------------

    def _fail(self, kind: DataKind, exc: SemobError) -> None:
        _logger.warning("Refreshing %s failed: %s", kind.value, exc)
        self._store.fail(kind, str(exc))
        self._bridge.show_toast(_FAILURE_MESSAGES[kind])

    async def refresh_buses(self) -> bool:
        """Fetch live positions. Returns False if suppressed or failed.

        A refresh already in flight suppresses a new one.
        """
        if self._store.is_fetching(DataKind.BUSES):
            _logger.debug("Bus refresh already in flight")
            return False
        self._store.begin(DataKind.BUSES)
        try:
            if self._config.enrich_buses:
                buses = await self._service.get_enhanced_buses()
            else:
                buses = await self._service.get_buses()
        except SemobError as exc:
            self._fail(DataKind.BUSES, exc)
            return False
        except asyncio.CancelledError:
            self._store.reset(DataKind.BUSES)
            raise
        self._store.replace(DataKind.BUSES, buses)
        self._push_update()
        return True

    async def refresh_stops(self, bounds: MapBounds | None = None, *, force: bool = False) -> bool:
        """Fetch stops for *bounds* (default: the current view).

        Skipped when the bounds did not move significantly since the last
        successful fetch, unless *force* is set.
        """
        if bounds is not None:
            self._view_bounds = bounds
        target = self._view_bounds
        if target is None:
            return False
        if not force and not bounds_moved_significantly(
            self._stops_bounds,
            target,
            min_shift_m=self._config.bounds_min_shift_m,
            min_extent_change=self._config.bounds_min_extent_change,
        ):
            return False
        if self._store.is_fetching(DataKind.STOPS):
            # Re-checked against the view once the running fetch completes.
            return False

        self._store.begin(DataKind.STOPS)
        try:
            stops = await self._service.get_stops(target)
        except SemobError as exc:
            self._fail(DataKind.STOPS, exc)
            return False
        except asyncio.CancelledError:
            self._store.reset(DataKind.STOPS)
            raise
        self._stops_bounds = target
        self._store.replace(DataKind.STOPS, stops)
        self._push_update()

        if self._view_bounds is not None and self._view_bounds != target:
            self._spawn(self.refresh_stops())
        return True

    async def preload_lines(self) -> bool:
        if self._store.is_fetching(DataKind.LINES):
            return False
        self._store.begin(DataKind.LINES)
        try:
            lines = await self._service.get_lines()
        except SemobError as exc:
            self._fail(DataKind.LINES, exc)
            return False
        except asyncio.CancelledError:
            self._store.reset(DataKind.LINES)
            raise
        self._lines_source = lines
        self._store.replace(DataKind.LINES, lines)
        return True

    def _sync_lines(self) -> None:
        """Adopt a line dataset the service reloaded on its own."""
        current = self._service.loaded_lines
        if current is None or current is self._lines_source:
            return
        self._lines_source = current
        self._store.replace(DataKind.LINES, current)
        self._push_update()

    # ------------------------------------------------------------------
    # Route overlay
    # ------------------------------------------------------------------

    @property
    def route_code(self) -> str:
        return self._route_code

    async def select_line(self, code: str) -> list[Line]:
        """Resolve *code* to route geometry and show it as the overlay."""
        clean = sanitize_line_code(code)
        if not clean:
            self.clear_route()
            return []
        self._route_code = clean
        try:
            lines = await self._service.find_lines(clean)
        except SemobError as exc:
            self._fail(DataKind.LINES, exc)
            return []
        self._sync_lines()
        if self._route_code != clean:
            # A newer selection replaced this one.
            return lines
        if not lines:
            self._bridge.show_toast(f"Rota da linha {clean} não encontrada")
        self._bridge.set_bus_route(clean, [line.to_payload() for line in lines])
        return lines

    def clear_route(self) -> None:
        self._route_code = ""
        self._bridge.set_bus_route("")

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    def on_bounds_changed(self, bounds: MapBounds) -> None:
        self._view_bounds = bounds
        self._spawn(self.refresh_stops(bounds))

    def on_zoom_changed(self, zoom: float) -> None:
        size = marker_size_for_zoom(zoom)
        if size != self._marker_size:
            self._marker_size = size
            self._push_update()

    def set_filters(
        self,
        *,
        only_active_buses: bool | None = None,
        selected_lines: Iterable[str] | None = None,
    ) -> None:
        """Change bus filters and re-push the current snapshot."""
        if only_active_buses is not None:
            self._only_active_buses = only_active_buses
        if selected_lines is not None:
            self._selected_lines = tuple(code for code in selected_lines if code)
        self._push_update()

    def set_style(self, **flags: Any) -> None:
        self._style.update(flags)
        self._push_update()

    def set_user_location(self, lat: float, lon: float, accuracy: float | None = None) -> None:
        self._user_location = UserLocation(lat=lat, lon=lon, accuracy=accuracy)
        self._bridge.set_user_position(lat, lon)
        self._push_update()

    def visible_buses(self) -> list[Bus]:
        return self._service.filter_buses(
            self._store.snapshot(DataKind.BUSES),
            only_active=self._only_active_buses,
            selected_lines=self._selected_lines,
        )

    def _push_update(self) -> None:
        command = UpdateDataCommand(
            buses=[bus.to_payload() for bus in self.visible_buses()],
            stops=[stop.to_payload() for stop in self._store.snapshot(DataKind.STOPS)],
            lines=[line.to_summary() for line in self._store.snapshot(DataKind.LINES)],
            user_location=self._user_location,
            style=dict(self._style),
            marker_size=self._marker_size,
        )
        self._bridge.update_data(command)

    def status(self) -> dict[str, Any]:
        """Per-kind refresh status plus overlay and surface state."""
        return {
            "kinds": self._store.as_dict(),
            "route": self._route_code,
            "surface_ready": self._bridge.ready,
            "center": self._center,
            "marker_size": self._marker_size,
        }

    # ------------------------------------------------------------------
    # Surface events
    # ------------------------------------------------------------------

    def _bus_line_code(self, bus_id: str) -> str | None:
        for bus in self._store.snapshot(DataKind.BUSES):
            if bus.id == bus_id:
                return bus.line_code
        return None

    def _on_event(self, event: BridgeEvent) -> None:
        if isinstance(event, BoundsChangedEvent):
            try:
                bounds = MapBounds(north=event.north, south=event.south, east=event.east, west=event.west)
            except ValidationError:
                _logger.warning("Ignoring out-of-range bounds from surface: %s", event)
                return
            self.on_bounds_changed(bounds)
        elif isinstance(event, ZoomChangedEvent):
            self.on_zoom_changed(event.zoom)
        elif isinstance(event, CenterChangedEvent):
            self._center = (event.lat, event.lon)
        elif isinstance(event, MarkerSelectedEvent) and event.kind == "bus":
            code = event.line_code or self._bus_line_code(event.id)
            if code:
                self._spawn(self.select_line(code))
