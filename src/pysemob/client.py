"""High-level async client for the SEMOB geodata service."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

import aiohttp

from pysemob._cache import ResponseCache
from pysemob._transport import AiohttpTransport, Transport
from pysemob.bridge.channel import BridgeChannel
from pysemob.bridge.dispatcher import BridgeDispatcher
from pysemob.bridge.surface import SurfaceEndpoint
from pysemob.config import SemobConfig
from pysemob.coordinator import RefreshCoordinator
from pysemob.exceptions import SemobError
from pysemob.fetcher import FetchClient
from pysemob.models.bounds import MapBounds
from pysemob.models.bus import Bus
from pysemob.models.fetch import FetchResult
from pysemob.models.fleet import FleetVehicle
from pysemob.models.line import Line
from pysemob.models.stop import Stop
from pysemob.service import GeodataService

_logger = logging.getLogger(__name__)


class SemobClient:
    """Async client for buses, stops and lines.

    Owns one response cache, one fetch client and one geodata service for
    its lifetime; every bridge and coordinator created from it shares them.

    Usage::

        async with SemobClient(SemobConfig.from_env()) as client:
            buses = await client.get_buses(only_active=True)
    """

    def __init__(
        self,
        config: SemobConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._config = config or SemobConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._clock = clock
        self._cache: ResponseCache | None = None
        self._fetcher: FetchClient | None = None
        self._service: GeodataService | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SemobClient:
        if self._transport is None:
            if self._http_session is None:
                timeout = aiohttp.ClientTimeout(total=None, sock_connect=self._config.request_timeout)
                self._http_session = aiohttp.ClientSession(timeout=timeout)
            self._transport = AiohttpTransport(self._http_session)
        self._cache = ResponseCache(self._config, clock=self._clock)
        self._fetcher = FetchClient(self._config, self._transport, self._cache)
        self._service = GeodataService(self._config, self._fetcher)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._fetcher = None
        self._service = None

    @property
    def config(self) -> SemobConfig:
        return self._config

    def _require_service(self) -> GeodataService:
        if self._service is None:
            raise SemobError("Client not initialized. Use 'async with SemobClient(...) as client:'")
        return self._service

    def _require_fetcher(self) -> FetchClient:
        if self._fetcher is None:
            raise SemobError("Client not initialized. Use 'async with SemobClient(...) as client:'")
        return self._fetcher

    @property
    def service(self) -> GeodataService:
        return self._require_service()

    @property
    def cache(self) -> ResponseCache:
        return self._require_fetcher().cache

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    async def fetch(self, url: str, *, bypass_cache: bool = False) -> FetchResult:
        """Raw cached/retried GET. Never raises."""
        return await self._require_fetcher().fetch(url, bypass_cache=bypass_cache)

    async def get_buses(
        self,
        bounds: MapBounds | None = None,
        *,
        only_active: bool = False,
        selected_lines: Iterable[str] | None = None,
    ) -> list[Bus]:
        return await self._require_service().get_buses(bounds, only_active=only_active, selected_lines=selected_lines)

    async def get_enhanced_buses(
        self,
        bounds: MapBounds | None = None,
        *,
        only_active: bool = False,
        selected_lines: Iterable[str] | None = None,
    ) -> list[Bus]:
        """Live positions joined with operator details from the fleet registry."""
        service = self._require_service()
        return await service.get_enhanced_buses(bounds, only_active=only_active, selected_lines=selected_lines)

    async def get_fleet(self) -> list[FleetVehicle]:
        return await self._require_service().get_fleet()

    async def get_stops(self, bounds: MapBounds | None = None, *, only_active: bool | None = None) -> list[Stop]:
        return await self._require_service().get_stops(bounds, only_active=only_active)

    async def get_lines(self, *, force_refresh: bool = False) -> list[Line]:
        return await self._require_service().get_lines(force_refresh=force_refresh)

    async def find_lines(self, code: str) -> list[Line]:
        return await self._require_service().find_lines(code)

    async def fare_for_line(self, code: str) -> float | None:
        return await self._require_service().fare_for_line(code)

    # ------------------------------------------------------------------
    # Rendering surface
    # ------------------------------------------------------------------

    def create_bridge(self, channel: BridgeChannel) -> BridgeDispatcher:
        """Dispatcher for a surface connected through *channel*."""
        return BridgeDispatcher(self._config, channel, self._require_fetcher())

    def create_coordinator(self, bridge: BridgeDispatcher) -> RefreshCoordinator:
        return RefreshCoordinator(self._config, self._require_service(), bridge)

    def create_surface(self, channel: BridgeChannel) -> SurfaceEndpoint:
        """Headless surface endpoint using the configured proxied-fetch timeout."""
        return SurfaceEndpoint(channel, fetch_timeout=self._config.bridge_fetch_timeout)
