from __future__ import annotations

import math

import pytest

from pysemob._geo import (
    UTM_CENTRAL_MERIDIAN,
    haversine_m,
    looks_projected,
    marker_size_for_zoom,
    to_geographic,
    utm_to_geographic,
)
from pysemob.exceptions import SemobInvalidGeometryError


def _forward_utm23s(lat: float, lon: float) -> tuple[float, float]:
    """Forward transverse Mercator (Snyder series) for zone 23S."""
    k0 = 0.9996
    a = 6378137.0
    e2 = 0.00669438
    ep2 = e2 / (1 - e2)
    phi = math.radians(lat)

    n = a / math.sqrt(1 - e2 * math.sin(phi) ** 2)
    t = math.tan(phi) ** 2
    c = ep2 * math.cos(phi) ** 2
    big_a = math.cos(phi) * math.radians(lon - (-45.0))
    m = a * (
        (1 - e2 / 4 - 3 * e2**2 / 64 - 5 * e2**3 / 256) * phi
        - (3 * e2 / 8 + 3 * e2**2 / 32 + 45 * e2**3 / 1024) * math.sin(2 * phi)
        + (15 * e2**2 / 256 + 45 * e2**3 / 1024) * math.sin(4 * phi)
        - (35 * e2**3 / 3072) * math.sin(6 * phi)
    )

    easting = k0 * n * (
        big_a + (1 - t + c) * big_a**3 / 6 + (5 - 18 * t + t * t + 72 * c - 58 * ep2) * big_a**5 / 120
    ) + 500000.0
    northing = k0 * (
        m
        + n
        * math.tan(phi)
        * (
            big_a**2 / 2
            + (5 - t + 9 * c + 4 * c * c) * big_a**4 / 24
            + (61 - 58 * t + t * t + 600 * c - 330 * ep2) * big_a**6 / 720
        )
    ) + 10000000.0
    return easting, northing


@pytest.mark.parametrize(
    ("lat", "lon"),
    [
        (-15.7939, -47.8828),  # Esplanada dos Ministérios
        (-15.8353, -48.0538),  # Taguatinga
        (-15.6536, -47.7923),  # Sobradinho
    ],
)
def test_utm_round_trip_within_tolerance(lat: float, lon: float) -> None:
    easting, northing = _forward_utm23s(lat, lon)
    assert looks_projected(easting, northing)

    got_lat, got_lon = utm_to_geographic(easting, northing)

    assert got_lat == pytest.approx(lat, abs=1e-5)
    assert got_lon == pytest.approx(lon, abs=1e-5)


def test_central_meridian_and_equator_are_exact() -> None:
    assert UTM_CENTRAL_MERIDIAN == -45
    lat, lon = utm_to_geographic(500000.0, 10000000.0)
    assert lat == 0.0
    assert lon == -45.0

    _, lon = utm_to_geographic(500000.0, 8_250_000.0)
    assert lon == -45.0


def test_not_an_affine_approximation() -> None:
    # Far from the central meridian the series terms matter: a linear
    # meters-to-degrees scaling would be off by more than 0.01 degrees.
    lat, lon = utm_to_geographic(190000.0, 8250000.0)
    naive_lon = -45.0 + (190000.0 - 500000.0) / 111320.0
    assert abs(lon - naive_lon) > 0.01
    assert -16.0 < lat < -15.5


def test_coordinate_classification() -> None:
    assert looks_projected(190000.0, 8250000.0)
    assert not looks_projected(-47.88, -15.79)
    assert not looks_projected(600000.0, 8250000.0)


def test_geographic_pairs_pass_through() -> None:
    assert to_geographic(-47.88, -15.79) == (-15.79, -47.88)


@pytest.mark.parametrize(("x", "y"), [(2.35, 48.85), (-47.88, 15.0), (float("nan"), -15.0)])
def test_points_outside_region_are_invalid(x: float, y: float) -> None:
    with pytest.raises(SemobInvalidGeometryError):
        to_geographic(x, y)


@pytest.mark.parametrize(
    ("zoom", "size"),
    [(5, 34), (10, 34), (12, 42), (13, 42), (16, 42), (19, 42), (11, 38)],
)
def test_marker_size_for_zoom(zoom: float, size: int) -> None:
    assert marker_size_for_zoom(zoom) == size


def test_haversine_one_degree_latitude() -> None:
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111195, rel=1e-3)
