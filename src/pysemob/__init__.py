"""pysemob - Async live geodata sync and rendering bridge for SEMOB transit maps."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysemob")
except PackageNotFoundError:
    __version__ = "0+local"
from pysemob._cache import CacheEntry, ResponseCache
from pysemob._geo import marker_size_for_zoom, to_geographic, utm_to_geographic
from pysemob.bridge import (
    BridgeDispatcher,
    SurfaceEndpoint,
    UpdateDataCommand,
    WebSocketChannel,
    create_memory_channel_pair,
)
from pysemob.client import SemobClient
from pysemob.config import SemobConfig
from pysemob.coordinator import RefreshCoordinator
from pysemob.exceptions import (
    SemobBridgeError,
    SemobBridgeTimeoutError,
    SemobConfigError,
    SemobError,
    SemobInvalidGeometryError,
    SemobMalformedDataError,
    SemobOversizedResponseError,
    SemobTimeoutError,
    SemobTransportError,
)
from pysemob.fetcher import FetchClient
from pysemob.ingestion.normalize import format_fare, line_codes_match
from pysemob.models import Bus, FetchResult, FleetVehicle, GeoFeatureCollection, Line, MapBounds, OperatorInfo, Stop
from pysemob.service import GeodataService
from pysemob.state import DataKind, FetchState

__all__ = [
    "__version__",
    "BridgeDispatcher",
    "Bus",
    "CacheEntry",
    "DataKind",
    "FetchClient",
    "FetchResult",
    "FetchState",
    "FleetVehicle",
    "GeoFeatureCollection",
    "GeodataService",
    "Line",
    "MapBounds",
    "OperatorInfo",
    "RefreshCoordinator",
    "ResponseCache",
    "SemobBridgeError",
    "SemobBridgeTimeoutError",
    "SemobClient",
    "SemobConfig",
    "SemobConfigError",
    "SemobError",
    "SemobInvalidGeometryError",
    "SemobMalformedDataError",
    "SemobOversizedResponseError",
    "SemobTimeoutError",
    "SemobTransportError",
    "Stop",
    "SurfaceEndpoint",
    "UpdateDataCommand",
    "WebSocketChannel",
    "create_memory_channel_pair",
    "format_fare",
    "line_codes_match",
    "marker_size_for_zoom",
    "to_geographic",
    "utm_to_geographic",
]
