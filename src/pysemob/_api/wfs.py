"""WFS query construction and request classification.

Endpoints are plain ``GetFeature`` queries against the configured WFS
service; each dataset is selected through its ``typeName`` parameter.
"""

from __future__ import annotations

import re
from enum import StrEnum
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from pysemob._constants import (
    GEOGRAPHIC_CRS,
    PROXY_MAX_FEATURES_BUSES,
    PROXY_MAX_FEATURES_DEFAULT,
    PROXY_MAX_FEATURES_STOPS,
)
from pysemob.config import SemobConfig
from pysemob.models.bounds import MapBounds

_LINE_CODE_DISALLOWED = re.compile(r"[^0-9A-Za-z _.-]")


class DatasetKind(StrEnum):
    """Coarse classification of a request's target dataset."""

    ROUTES = "routes"
    STOPS = "stops"
    FLEET = "fleet"
    LIVE = "live"
    UNKNOWN = "unknown"


def _query_param(url: str, name: str) -> str | None:
    """Return the first value of query parameter *name* (case-insensitive)."""
    wanted = name.lower()
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key.lower() == wanted:
            return value
    return None


def type_name_of(url: str) -> str | None:
    """Return the ``typeName``/``typeNames`` parameter of a WFS URL."""
    value = _query_param(url, "typeName")
    if value is None:
        value = _query_param(url, "typeNames")
    return value


def _same_type_name(candidate: str, configured: str) -> bool:
    # Callers sometimes drop the workspace prefix ("semob:").
    candidate = candidate.strip().casefold()
    configured = configured.strip().casefold()
    if candidate == configured:
        return True
    return candidate == configured.split(":", 1)[-1]


def classify_dataset(url: str, config: SemobConfig) -> DatasetKind:
    """Classify *url* into a cache bucket by its ``typeName`` parameter.

    Unrecognized or missing type names are ``UNKNOWN`` and never cached.
    """
    type_name = type_name_of(url)
    if not type_name:
        return DatasetKind.UNKNOWN
    if _same_type_name(type_name, config.lines_type_name):
        return DatasetKind.ROUTES
    if _same_type_name(type_name, config.stops_type_name):
        return DatasetKind.STOPS
    if _same_type_name(type_name, config.fleet_type_name):
        return DatasetKind.FLEET
    if _same_type_name(type_name, config.buses_type_name):
        return DatasetKind.LIVE
    return DatasetKind.UNKNOWN


def is_live_positions_url(url: str, config: SemobConfig) -> bool:
    """Return True if *url* targets the live bus position dataset.

    Matches the configured type name as well as any type name mentioning
    the fleet's last-position layer.
    """
    type_name = type_name_of(url) or ""
    if _same_type_name(type_name, config.buses_type_name):
        return True
    return "posição da frota" in type_name.casefold() or "posicao da frota" in type_name.casefold()


def bbox_param(bounds: MapBounds) -> str:
    """Return ``minX,minY,maxX,maxY,CRS`` for *bounds*.

    Corners are min/max-normalized so swapped east/west or north/south
    values still produce a valid box.
    """
    min_x = min(bounds.west, bounds.east)
    max_x = max(bounds.west, bounds.east)
    min_y = min(bounds.south, bounds.north)
    max_y = max(bounds.south, bounds.north)
    return f"{min_x},{min_y},{max_x},{max_y},{GEOGRAPHIC_CRS}"


def build_wfs_url(
    base_url: str,
    type_name: str,
    *,
    max_features: int | None = None,
    bounds: MapBounds | None = None,
    force_srs: bool = False,
) -> str:
    """Build a WFS ``GetFeature`` URL returning GeoJSON.

    Parameters
    ----------
    base_url : str
        WFS service endpoint.
    type_name : str
        Dataset type name.
    max_features : int or None
        Optional ``maxFeatures`` cap.
    bounds : MapBounds or None
        Optional bounding box filter, in geographic degrees.
    force_srs : bool
        Request geographic output even without a bounding box.
    """
    params: list[tuple[str, str]] = [
        ("service", "WFS"),
        ("version", "1.0.0"),
        ("request", "GetFeature"),
        ("typeName", type_name),
        ("outputFormat", "application/json"),
    ]
    if max_features is not None:
        params.append(("maxFeatures", str(max_features)))
    if bounds is not None:
        params.append(("bbox", bbox_param(bounds)))
    if bounds is not None or force_srs:
        params.append(("srsName", GEOGRAPHIC_CRS))
    return f"{base_url}?{urlencode(params, quote_via=quote, safe=':,')}"


def with_max_features(url: str, config: SemobConfig) -> str:
    """Return *url* with a ``maxFeatures`` cap added when it has none.

    The cap depends on the dataset: live positions, stops, or anything else.
    """
    if _query_param(url, "maxFeatures") is not None or _query_param(url, "count") is not None:
        return url

    kind = classify_dataset(url, config)
    type_name = type_name_of(url) or ""
    if kind is DatasetKind.LIVE or is_live_positions_url(url, config):
        cap = PROXY_MAX_FEATURES_BUSES
    elif kind is DatasetKind.STOPS or "paradas" in type_name.casefold():
        cap = PROXY_MAX_FEATURES_STOPS
    else:
        cap = PROXY_MAX_FEATURES_DEFAULT

    parts = urlsplit(url)
    query = f"{parts.query}&maxFeatures={cap}" if parts.query else f"maxFeatures={cap}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def host_of(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def sanitize_line_code(code: str) -> str:
    """Strip characters outside ``[0-9A-Za-z _.-]`` from a line code."""
    return _LINE_CODE_DISALLOWED.sub("", code).strip()
