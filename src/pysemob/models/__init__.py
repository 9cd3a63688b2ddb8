"""Data models for geodata entities and raw payloads."""

from pysemob.models._base import SemobBaseModel
from pysemob.models.bounds import MapBounds
from pysemob.models.bus import Bus
from pysemob.models.feature import GeoFeature, GeoFeatureCollection, Geometry
from pysemob.models.fetch import FetchResult
from pysemob.models.fleet import FleetVehicle, OperatorInfo
from pysemob.models.line import Line
from pysemob.models.stop import Stop

__all__ = [
    "Bus",
    "FetchResult",
    "FleetVehicle",
    "GeoFeature",
    "GeoFeatureCollection",
    "Geometry",
    "Line",
    "MapBounds",
    "OperatorInfo",
    "SemobBaseModel",
    "Stop",
]
