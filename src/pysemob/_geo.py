"""Coordinate handling for the operating region.

Upstream layers mix geographic lon/lat pairs with planar SIRGAS 2000 /
UTM zone 23S coordinates (EPSG:31983). Planar pairs are detected by range
and projected back with the closed-form inverse transverse Mercator series.
"""

from __future__ import annotations

import math

from pysemob.exceptions import SemobInvalidGeometryError
from pysemob.models.bounds import MapBounds

# UTM zone 23S on the WGS84/SIRGAS 2000 ellipsoid.
UTM_SCALE_FACTOR = 0.9996
UTM_SEMI_MAJOR_AXIS = 6378137.0
UTM_ECC_SQUARED = 0.00669438
UTM_ZONE = 23
UTM_CENTRAL_MERIDIAN = (UTM_ZONE - 1) * 6 - 180 + 3
UTM_FALSE_EASTING = 500000.0
UTM_FALSE_NORTHING = 10000000.0

# Planar coordinates of the region fall in this band.
_PROJECTED_EASTING_RANGE = (100000.0, 400000.0)
_PROJECTED_NORTHING_RANGE = (8_000_000.0, 9_200_000.0)

# Plausibility box for projected or received geographic coordinates.
_LAT_RANGE = (-35.0, 10.0)
_LON_RANGE = (-75.0, -25.0)

_EARTH_RADIUS_M = 6371008.8

# Marker scaling by zoom level.
_MARKER_MIN_ZOOM = 10.0
_MARKER_MAX_ZOOM = 16.0
_MARKER_MIN_SIZE = 34.0
_MARKER_MAX_SIZE = 58.0
_MARKER_SIZE_CAP = 42


def looks_projected(x: float, y: float) -> bool:
    """Return True if ``(x, y)`` is a planar UTM 23S easting/northing."""
    return (
        _PROJECTED_EASTING_RANGE[0] < x < _PROJECTED_EASTING_RANGE[1]
        and _PROJECTED_NORTHING_RANGE[0] < y < _PROJECTED_NORTHING_RANGE[1]
    )


def utm_to_geographic(easting: float, northing: float) -> tuple[float, float]:
    """Project a UTM zone 23S easting/northing to ``(lat, lon)`` degrees.

    Uses the footprint-latitude series expansion, not an affine
    approximation.
    """
    k0 = UTM_SCALE_FACTOR
    a = UTM_SEMI_MAJOR_AXIS
    e2 = UTM_ECC_SQUARED
    ep2 = e2 / (1 - e2)
    e1 = (1 - math.sqrt(1 - e2)) / (1 + math.sqrt(1 - e2))

    x = easting - UTM_FALSE_EASTING
    y = northing - UTM_FALSE_NORTHING

    m = y / k0
    mu = m / (a * (1 - e2 / 4 - 3 * e2**2 / 64 - 5 * e2**3 / 256))

    j1 = 3 * e1 / 2 - 27 * e1**3 / 32
    j2 = 21 * e1**2 / 16 - 55 * e1**4 / 32
    j3 = 151 * e1**3 / 96
    j4 = 1097 * e1**4 / 512

    fp = mu + j1 * math.sin(2 * mu) + j2 * math.sin(4 * mu) + j3 * math.sin(6 * mu) + j4 * math.sin(8 * mu)

    sin_fp = math.sin(fp)
    cos_fp = math.cos(fp)
    tan_fp = math.tan(fp)

    c1 = ep2 * cos_fp * cos_fp
    t1 = tan_fp * tan_fp
    n1 = a / math.sqrt(1 - e2 * sin_fp * sin_fp)
    r1 = n1 * (1 - e2) / (1 - e2 * sin_fp * sin_fp)
    d = x / (n1 * k0)

    lat = fp - (n1 * tan_fp / r1) * (
        d * d / 2
        - (5 + 3 * t1 + 10 * c1 - 4 * c1 * c1 - 9 * ep2) * d**4 / 24
        + (61 + 90 * t1 + 298 * c1 + 45 * t1 * t1 - 252 * ep2 - 3 * c1 * c1) * d**6 / 720
    )
    lon = (
        d
        - (1 + 2 * t1 + c1) * d**3 / 6
        + (5 - 2 * c1 + 28 * t1 - 3 * c1 * c1 + 8 * ep2 + 24 * t1 * t1) * d**5 / 120
    ) / cos_fp

    return math.degrees(lat), UTM_CENTRAL_MERIDIAN + math.degrees(lon)


def is_plausible(lat: float, lon: float) -> bool:
    if math.isnan(lat) or math.isnan(lon):
        return False
    return _LAT_RANGE[0] <= lat <= _LAT_RANGE[1] and _LON_RANGE[0] <= lon <= _LON_RANGE[1]


def to_geographic(x: float, y: float) -> tuple[float, float]:
    """Return ``(lat, lon)`` for a raw coordinate pair.

    ``x``/``y`` are either lon/lat degrees or a UTM 23S easting/northing.

    Raises
    ------
    SemobInvalidGeometryError
        If the resulting point falls outside the region's plausibility box.
    """
    if looks_projected(x, y):
        lat, lon = utm_to_geographic(x, y)
    else:
        lon, lat = x, y
    if not is_plausible(lat, lon):
        raise SemobInvalidGeometryError(f"Point ({x}, {y}) is outside the operating region", lat=lat, lon=lon)
    return lat, lon


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * _EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def bounds_center(bounds: MapBounds) -> tuple[float, float]:
    return (bounds.north + bounds.south) / 2, (bounds.east + bounds.west) / 2


def bounds_extent(bounds: MapBounds) -> tuple[float, float]:
    """Return ``(lat_span, lon_span)`` in degrees."""
    return abs(bounds.north - bounds.south), abs(bounds.east - bounds.west)


def marker_size_for_zoom(zoom: float) -> int:
    """Marker size in pixels for a map zoom level.

    Linear between zoom 10 (34 px) and zoom 16 (58 px), clamped outside that
    range, and capped at 42 px.
    """
    z = min(max(zoom, _MARKER_MIN_ZOOM), _MARKER_MAX_ZOOM)
    ratio = (z - _MARKER_MIN_ZOOM) / (_MARKER_MAX_ZOOM - _MARKER_MIN_ZOOM)
    size = round(_MARKER_MIN_SIZE + ratio * (_MARKER_MAX_SIZE - _MARKER_MIN_SIZE))
    return min(size, _MARKER_SIZE_CAP)
