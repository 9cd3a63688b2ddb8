from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest

from pysemob._api.wfs import (
    DatasetKind,
    bbox_param,
    build_wfs_url,
    classify_dataset,
    is_live_positions_url,
    sanitize_line_code,
    with_max_features,
)
from pysemob.config import SemobConfig
from pysemob.models.bounds import MapBounds

_CONFIG = SemobConfig(base_url="https://geo.example.test/ows")


def _params(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


def test_bbox_is_min_max_normalized() -> None:
    swapped = MapBounds(north=-15.9, south=-15.7, east=-48.0, west=-47.8)
    assert bbox_param(swapped) == "-48.0,-15.9,-47.8,-15.7,EPSG:4326"


def test_build_wfs_url_with_bounds() -> None:
    bounds = MapBounds(north=-15.7, south=-15.9, east=-47.8, west=-48.0)
    url = build_wfs_url(_CONFIG.base_url, _CONFIG.stops_type_name, max_features=200, bounds=bounds)
    params = _params(url)

    assert params["typeName"] == ["semob:Paradas de onibus"]
    assert params["bbox"] == ["-48.0,-15.9,-47.8,-15.7,EPSG:4326"]
    assert params["srsName"] == ["EPSG:4326"]
    assert params["maxFeatures"] == ["200"]
    assert params["outputFormat"] == ["application/json"]


def test_build_wfs_url_without_bounds_has_no_bbox() -> None:
    url = build_wfs_url(_CONFIG.base_url, _CONFIG.lines_type_name)
    params = _params(url)
    assert "bbox" not in params
    assert "srsName" not in params
    assert "maxFeatures" not in params


@pytest.mark.parametrize(
    ("type_name", "kind"),
    [
        ("semob:Linhas de onibus", DatasetKind.ROUTES),
        ("semob:paradas de onibus", DatasetKind.STOPS),
        ("Paradas de onibus", DatasetKind.STOPS),
        ("semob:Última posição da frota", DatasetKind.LIVE),
        ("semob:Frota por operadora", DatasetKind.FLEET),
        ("semob:Outra", DatasetKind.UNKNOWN),
    ],
)
def test_classify_dataset(type_name: str, kind: DatasetKind) -> None:
    url = build_wfs_url(_CONFIG.base_url, type_name)
    assert classify_dataset(url, _CONFIG) is kind


def test_classify_accepts_lowercase_param_name() -> None:
    url = "https://geo.example.test/ows?typename=semob%3ALinhas%20de%20onibus"
    assert classify_dataset(url, _CONFIG) is DatasetKind.ROUTES
    assert classify_dataset("https://geo.example.test/ows", _CONFIG) is DatasetKind.UNKNOWN


def test_live_positions_detection() -> None:
    url = build_wfs_url(_CONFIG.base_url, "semob:Última posição da frota")
    assert is_live_positions_url(url, _CONFIG)
    assert not is_live_positions_url(build_wfs_url(_CONFIG.base_url, "semob:Paradas de onibus"), _CONFIG)


@pytest.mark.parametrize(
    ("type_name", "cap"),
    [
        ("semob:Última posição da frota", "300"),
        ("semob:Paradas de onibus", "150"),
        ("semob:Linhas de onibus", "50"),
    ],
)
def test_with_max_features_adds_dataset_cap(type_name: str, cap: str) -> None:
    url = with_max_features(build_wfs_url(_CONFIG.base_url, type_name), _CONFIG)
    assert _params(url)["maxFeatures"] == [cap]


def test_with_max_features_keeps_existing_cap() -> None:
    url = build_wfs_url(_CONFIG.base_url, "semob:Paradas de onibus", max_features=10)
    assert with_max_features(url, _CONFIG) == url


def test_sanitize_line_code() -> None:
    assert sanitize_line_code("0.110<script>") == "0.110script"
    assert sanitize_line_code(" 110-A_b ") == "110-A_b"
    assert sanitize_line_code("';--") == "--"
