"""Feature-to-entity transforms.

Each raw GeoJSON feature is turned into one domain entity. Failures are
per feature: a malformed feature is skipped with a warning, a feature with
coordinates outside the operating region is dropped at DEBUG level, and
the rest of the collection is kept.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pydantic import ValidationError

from pysemob._geo import to_geographic
from pysemob._redact import summarize_for_log
from pysemob.exceptions import SemobInvalidGeometryError, SemobMalformedDataError, SemobTransportError
from pysemob.ingestion.normalize import safe_float
from pysemob.models.bus import Bus
from pysemob.models.feature import GeoFeature, GeoFeatureCollection, Geometry
from pysemob.models.fleet import FleetVehicle
from pysemob.models.line import Line
from pysemob.models.stop import Stop

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_collection(body: str, *, url: str = "") -> GeoFeatureCollection:
    """Decode a WFS response body into a feature collection.

    Raises
    ------
    SemobTransportError
        If the body is not JSON or not a feature collection.
    """
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise SemobTransportError(f"Invalid JSON from {url}: {body[:200]}", url=url) from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("features", []), list):
        raise SemobTransportError(f"Response from {url} is not a feature collection", url=url)
    try:
        return GeoFeatureCollection.model_validate(payload)
    except ValidationError as exc:
        raise SemobTransportError(f"Response from {url} is not a feature collection: {exc}", url=url) from exc


def _properties_only(raw: Any) -> GeoFeature:
    try:
        return GeoFeature.model_validate(raw)
    except ValidationError as exc:
        raise SemobMalformedDataError(f"Invalid feature: {exc}") from exc


def _feature(raw: Any) -> tuple[GeoFeature, Geometry]:
    feature = _properties_only(raw)
    if feature.geometry is None:
        raise SemobMalformedDataError("Feature has no geometry")
    return feature, feature.geometry


def _xy(value: Any) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        raise SemobMalformedDataError(f"Invalid coordinate pair: {summarize_for_log(value)}")
    x = safe_float(value[0])
    y = safe_float(value[1])
    if x is None or y is None:
        raise SemobMalformedDataError(f"Non-numeric coordinate pair: {summarize_for_log(value)}")
    return x, y


def _point(geometry: Geometry) -> tuple[float, float]:
    """Return ``(lat, lon)`` of a Point geometry, projecting if needed."""
    if geometry.type != "Point":
        raise SemobMalformedDataError(f"Expected Point geometry, got {geometry.type}")
    x, y = _xy(geometry.coordinates)
    return to_geographic(x, y)


def _polyline(geometry: Geometry) -> list[tuple[float, float]]:
    """Return ``[lon, lat]`` vertices of a (Multi)LineString, flattened."""
    if geometry.type == "LineString":
        parts = [geometry.coordinates]
    elif geometry.type == "MultiLineString":
        parts = geometry.coordinates
    else:
        raise SemobMalformedDataError(f"Expected LineString geometry, got {geometry.type}")
    if not isinstance(parts, list):
        raise SemobMalformedDataError("Line geometry has no coordinates")

    vertices: list[tuple[float, float]] = []
    dropped = 0
    for part in parts:
        if not isinstance(part, list):
            raise SemobMalformedDataError("Invalid line part")
        for pair in part:
            x, y = _xy(pair)
            try:
                lat, lon = to_geographic(x, y)
            except SemobInvalidGeometryError:
                dropped += 1
                continue
            vertices.append((lon, lat))
    if not vertices:
        raise SemobInvalidGeometryError(f"All {dropped} line vertices are outside the operating region")
    return vertices


def _build(model: Callable[[dict[str, Any]], T], values: dict[str, Any]) -> T:
    try:
        return model(values)
    except ValidationError as exc:
        raise SemobMalformedDataError(str(exc)) from exc


def bus_from_feature(raw: Any) -> Bus:
    feature, geometry = _feature(raw)
    lat, lon = _point(geometry)
    values = {**feature.properties, "lat": lat, "lon": lon, "raw": feature.properties}
    return _build(Bus.model_validate, values)


def stop_from_feature(raw: Any) -> Stop:
    feature, geometry = _feature(raw)
    lat, lon = _point(geometry)
    values = {**feature.properties, "lat": lat, "lon": lon, "raw": feature.properties}
    return _build(Stop.model_validate, values)


def line_from_feature(raw: Any) -> Line:
    feature, geometry = _feature(raw)
    coordinates = _polyline(geometry)
    values = {
        **feature.properties,
        "coordinates": coordinates,
        "geometry_kind": geometry.type,
        "raw": feature.properties,
    }
    return _build(Line.model_validate, values)


def fleet_from_feature(raw: Any) -> FleetVehicle:
    """Build a fleet registry record. Geometry, if any, is ignored."""
    feature = _properties_only(raw)
    values = {**feature.properties, "raw": feature.properties}
    return _build(FleetVehicle.model_validate, values)


def transform_features(features: Iterable[Any], parse: Callable[[Any], T], *, label: str) -> list[T]:
    """Apply *parse* to each feature, skipping those that fail."""
    entities: list[T] = []
    skipped = 0
    dropped = 0
    for raw in features:
        try:
            entities.append(parse(raw))
        except SemobInvalidGeometryError as exc:
            dropped += 1
            _logger.debug("Dropping %s outside operating region: %s", label, exc)
        except SemobMalformedDataError as exc:
            skipped += 1
            _logger.warning("Skipping malformed %s feature: %s", label, summarize_for_log(str(exc)))
    if skipped or dropped:
        _logger.debug("%s: kept %d, skipped %d malformed, dropped %d invalid", label, len(entities), skipped, dropped)
    return entities
