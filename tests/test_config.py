from __future__ import annotations

import pytest

from pysemob.config import SemobConfig
from pysemob.exceptions import SemobConfigError


def test_defaults() -> None:
    config = SemobConfig()

    assert config.max_attempts == 3
    assert config.routes_ttl == 12 * 3600
    assert config.stops_ttl == 30 * 60
    assert config.poll_interval == 10.0
    assert config.allowed_hosts == frozenset({"geoserver.semob.df.gov.br"})
    assert config.fleet_type_name == "semob:Frota por operadora"
    assert config.enrich_buses is False


def test_from_env_reads_variables_and_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEMOB_BASE_URL", "https://geo.example.test/ows")
    monkeypatch.setenv("SEMOB_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("SEMOB_POLL_INTERVAL", "2.5")
    monkeypatch.setenv("SEMOB_PROXY_ALLOWED_HOSTS", "geo.example.test, Tiles.Example.test ,")
    monkeypatch.setenv("SEMOB_ONLY_ACTIVE_STOPS", "no")
    monkeypatch.setenv("SEMOB_ENRICH_BUSES", "yes")
    monkeypatch.setenv("SEMOB_FLEET_TYPE_NAME", "semob:Frota")

    config = SemobConfig.from_env(max_attempts=2)

    assert config.base_url == "https://geo.example.test/ows"
    assert config.max_attempts == 2
    assert config.poll_interval == 2.5
    assert config.allowed_hosts == frozenset({"geo.example.test", "tiles.example.test"})
    assert config.only_active_stops is False
    assert config.enrich_buses is True
    assert config.fleet_type_name == "semob:Frota"


def test_from_env_rejects_non_numeric(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEMOB_REQUEST_TIMEOUT", "soon")

    with pytest.raises(SemobConfigError, match="SEMOB_REQUEST_TIMEOUT"):
        SemobConfig.from_env()


@pytest.mark.parametrize(
    "overrides",
    [{"max_attempts": 0}, {"request_timeout": 0}, {"poll_interval": -1}, {"base_url": " "}],
)
def test_invalid_values_raise(overrides: dict[str, object]) -> None:
    with pytest.raises(SemobConfigError):
        SemobConfig(**overrides)  # type: ignore[arg-type]
