"""Refetch policy for map viewport changes.

Pure functions; no I/O and no state.
"""

from __future__ import annotations

from pysemob._geo import bounds_center, bounds_extent, haversine_m
from pysemob.models.bounds import MapBounds


def _relative_change(previous: float, current: float) -> float:
    if previous <= 0:
        return 0.0 if current <= 0 else float("inf")
    return abs(current - previous) / previous


def bounds_moved_significantly(
    previous: MapBounds | None,
    current: MapBounds,
    *,
    min_shift_m: float,
    min_extent_change: float,
) -> bool:
    """Decide whether *current* warrants a refetch compared to *previous*.

    Policy:
    - No previous bounds: always refetch.
    - The view center moved more than ``min_shift_m`` meters: refetch.
    - Either span changed by more than ``min_extent_change`` (relative): refetch.
    """
    if previous is None:
        return True

    prev_lat, prev_lon = bounds_center(previous)
    cur_lat, cur_lon = bounds_center(current)
    if haversine_m(prev_lat, prev_lon, cur_lat, cur_lon) > min_shift_m:
        return True

    prev_lat_span, prev_lon_span = bounds_extent(previous)
    cur_lat_span, cur_lon_span = bounds_extent(current)
    return (
        _relative_change(prev_lat_span, cur_lat_span) > min_extent_change
        or _relative_change(prev_lon_span, cur_lon_span) > min_extent_change
    )
