"""Geodata service: typed access to the bus, stop, line and fleet datasets."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from pysemob._api.wfs import build_wfs_url
from pysemob.config import SemobConfig
from pysemob.exceptions import SemobError, SemobTransportError
from pysemob.fetcher import FetchClient
from pysemob.ingestion.normalize import (
    format_fare,
    line_codes_match,
    main_operator,
    matches_any_line,
    normalize_prefix,
)
from pysemob.ingestion.transform import (
    bus_from_feature,
    fleet_from_feature,
    line_from_feature,
    parse_collection,
    stop_from_feature,
    transform_features,
)
from pysemob.models.bounds import MapBounds
from pysemob.models.bus import Bus
from pysemob.models.feature import GeoFeatureCollection
from pysemob.models.fleet import FleetVehicle, OperatorInfo
from pysemob.models.line import Line
from pysemob.models.stop import Stop

_logger = logging.getLogger(__name__)


class GeodataService:
    """Fetches WFS datasets through a :class:`FetchClient` and transforms them.

    The line dataset is held in memory once loaded. A line lookup that
    finds nothing triggers one forced reload; concurrent callers share the
    same reload.
    """

    def __init__(self, config: SemobConfig, fetcher: FetchClient) -> None:
        self._config = config
        self._fetcher = fetcher
        self._lines: list[Line] | None = None
        self._lines_task: asyncio.Task[list[Line]] | None = None

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def buses_url(self, bounds: MapBounds | None = None) -> str:
        return build_wfs_url(
            self._config.base_url,
            self._config.buses_type_name,
            max_features=self._config.buses_max_features,
            bounds=bounds,
        )

    def stops_url(self, bounds: MapBounds | None = None) -> str:
        return build_wfs_url(
            self._config.base_url,
            self._config.stops_type_name,
            max_features=self._config.stops_max_features,
            bounds=bounds,
            force_srs=True,
        )

    def lines_url(self) -> str:
        return build_wfs_url(
            self._config.base_url,
            self._config.lines_type_name,
            max_features=self._config.lines_max_features,
        )

    def fleet_url(self) -> str:
        return build_wfs_url(
            self._config.base_url,
            self._config.fleet_type_name,
            max_features=self._config.fleet_max_features,
        )

    async def _fetch_collection(self, url: str, *, bypass_cache: bool = False) -> GeoFeatureCollection:
        result = await self._fetcher.fetch(url, bypass_cache=bypass_cache)
        if not result.ok:
            raise SemobTransportError(
                f"Fetch failed with status {result.status}",
                status_code=result.status,
                url=url,
            )
        return parse_collection(result.body, url=url)

    # ------------------------------------------------------------------
    # Buses
    # ------------------------------------------------------------------

    async def get_buses(
        self,
        bounds: MapBounds | None = None,
        *,
        only_active: bool = False,
        selected_lines: Iterable[str] | None = None,
    ) -> list[Bus]:
        """Fetch live bus positions. Always bypasses the cache.

        Raises
        ------
        SemobTransportError
            If the fetch fails after retries or the body is not a feature
            collection.
        """
        collection = await self._fetch_collection(self.buses_url(bounds), bypass_cache=True)
        buses = transform_features(collection.features, bus_from_feature, label="bus")
        return self.filter_buses(buses, only_active=only_active, selected_lines=selected_lines)

    @staticmethod
    def filter_buses(
        buses: Iterable[Bus],
        *,
        only_active: bool = False,
        selected_lines: Iterable[str] | None = None,
    ) -> list[Bus]:
        """Apply the active-only and selected-lines filters.

        An empty or ``None`` *selected_lines* disables line filtering.
        """
        selected = [code for code in (selected_lines or ()) if code]
        filtered: list[Bus] = []
        for bus in buses:
            if only_active and not bus.active:
                continue
            if selected and not matches_any_line(bus.line_code, selected):
                continue
            filtered.append(bus)
        return filtered

    # ------------------------------------------------------------------
    # Fleet registry
    # ------------------------------------------------------------------

    async def get_fleet(self) -> list[FleetVehicle]:
        """Fetch the fleet registry (vehicle number to operator).

        Served from the long-lived cache bucket, like the line dataset.
        """
        collection = await self._fetch_collection(self.fleet_url())
        return transform_features(collection.features, fleet_from_feature, label="fleet vehicle")

    @staticmethod
    def enhance_buses(buses: Iterable[Bus], fleet: Iterable[FleetVehicle]) -> list[Bus]:
        """Attach operator details to every bus found in *fleet*.

        Vehicles are joined on the normalized prefix; a later registry
        record for the same vehicle wins. Main operators get their short
        name and marker colour. Buses missing from the registry are
        returned unchanged.
        """
        registry = {vehicle.key: vehicle for vehicle in fleet}
        enhanced: list[Bus] = []
        for bus in buses:
            vehicle = registry.get(normalize_prefix(bus.prefix))
            if vehicle is None:
                enhanced.append(bus)
                continue
            name, color = main_operator(vehicle.operator)
            info = OperatorInfo(
                name=name,
                service=vehicle.service,
                bus_type=vehicle.bus_type,
                reference_date=vehicle.reference_date,
                color=color,
            )
            enhanced.append(bus.model_copy(update={"operator": info}))
        return enhanced

    async def _fleet_or_empty(self) -> list[FleetVehicle]:
        try:
            return await self.get_fleet()
        except SemobError as exc:
            _logger.warning("Fleet registry unavailable, buses left without operator: %s", exc)
            return []

    async def get_enhanced_buses(
        self,
        bounds: MapBounds | None = None,
        *,
        only_active: bool = False,
        selected_lines: Iterable[str] | None = None,
    ) -> list[Bus]:
        """Live positions with operator details from the fleet registry.

        Both datasets are requested concurrently. A failing registry
        fetch degrades to plain positions; a failing position fetch
        raises like :meth:`get_buses`.
        """
        buses, fleet = await asyncio.gather(
            self.get_buses(bounds, only_active=only_active, selected_lines=selected_lines),
            self._fleet_or_empty(),
        )
        return self.enhance_buses(buses, fleet)

    # ------------------------------------------------------------------
    # Stops
    # ------------------------------------------------------------------

    async def get_stops(self, bounds: MapBounds | None = None, *, only_active: bool | None = None) -> list[Stop]:
        """Fetch stops, optionally limited to *bounds*.

        ``only_active`` defaults to ``config.only_active_stops``.
        """
        if only_active is None:
            only_active = self._config.only_active_stops
        collection = await self._fetch_collection(self.stops_url(bounds))
        stops = transform_features(collection.features, stop_from_feature, label="stop")
        if only_active:
            stops = [stop for stop in stops if stop.active]
        return stops

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    @property
    def lines_loaded(self) -> bool:
        return self._lines is not None

    @property
    def loaded_lines(self) -> list[Line] | None:
        """The line dataset currently held in memory, without loading it."""
        return self._lines

    async def get_lines(self, *, force_refresh: bool = False) -> list[Line]:
        """Return the line dataset, loading it on first use.

        Parameters
        ----------
        force_refresh : bool
            Reload from the network, bypassing both the in-memory dataset
            and the response cache. Joins a load already in progress.
        """
        if self._lines is not None and not force_refresh:
            return self._lines

        task = self._lines_task
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._load_lines(force_refresh))
            self._lines_task = task
        return await asyncio.shield(task)

    async def _load_lines(self, force_refresh: bool) -> list[Line]:
        collection = await self._fetch_collection(self.lines_url(), bypass_cache=force_refresh)
        lines = transform_features(collection.features, line_from_feature, label="line")
        self._lines = lines
        _logger.debug("Loaded %d lines (forced=%s)", len(lines), force_refresh)
        return lines

    @staticmethod
    def match_lines(lines: Iterable[Line], code: str) -> list[Line]:
        return [line for line in lines if any(line_codes_match(code, candidate) for candidate in line.codes())]

    async def find_lines(self, code: str) -> list[Line]:
        """Return every line matching *code*.

        A miss against the loaded dataset triggers exactly one forced
        reload before giving up.
        """
        if not code or not code.strip():
            return []
        matches = self.match_lines(await self.get_lines(), code)
        if matches:
            return matches
        _logger.debug("No line matches %r, reloading line dataset", code)
        return self.match_lines(await self.get_lines(force_refresh=True), code)

    async def fare_for_line(self, code: str) -> float | None:
        """Fare of the first matching line record that carries one."""
        for line in await self.find_lines(code):
            if line.fare is not None:
                return line.fare
        return None

    async def fare_for_bus(self, bus: Bus) -> float | None:
        if bus.fare is not None:
            return bus.fare
        if not bus.line_code:
            return None
        return await self.fare_for_line(bus.line_code)

    @staticmethod
    def format_fare(value: float | None) -> str | None:
        return format_fare(value)
