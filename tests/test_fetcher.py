from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field

import pytest

from pysemob._api.wfs import DatasetKind, build_wfs_url
from pysemob._cache import ResponseCache
from pysemob._constants import TIMEOUT_TEXT, TOO_LARGE_TEXT
from pysemob._transport import TransportResponse
from pysemob.config import SemobConfig
from pysemob.exceptions import SemobOversizedResponseError, SemobTransportError
from pysemob.fetcher import FetchClient

_BASE = "https://geo.example.test/ows"


def _config(**overrides: object) -> SemobConfig:
    values: dict[str, object] = {"base_url": _BASE, "retry_backoff": 0.0, "request_timeout": 1.0}
    values.update(overrides)
    return SemobConfig(**values)  # type: ignore[arg-type]


@dataclass
class FakeTransport:
    """Scripted transport: pops one outcome per call, repeating the last."""

    outcomes: list[TransportResponse | Exception] = field(default_factory=list)
    delay: float = 0.0
    calls: list[str] = field(default_factory=list)

    async def get_text(
        self,
        url: str,
        *,
        max_bytes: int,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _Clock:
    def __init__(self) -> None:
        self.now = 1_700_000_000_000

    def __call__(self) -> int:
        return self.now


def _client(transport: FakeTransport, *, clock: _Clock | None = None, **overrides: object) -> FetchClient:
    config = _config(**overrides)
    return FetchClient(config, transport, ResponseCache(config, clock=clock))


def _ok(body: str = '{"type":"FeatureCollection","features":[]}') -> TransportResponse:
    return TransportResponse(status=200, body=body)


LINES_URL = build_wfs_url(_BASE, "semob:Linhas de onibus", max_features=100)
STOPS_URL = build_wfs_url(_BASE, "semob:Paradas de onibus", max_features=200)
BUSES_URL = build_wfs_url(_BASE, "semob:Última posição da frota", max_features=500)


# ---------------------------------------------------------------------------
# TTL buckets
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_routes_served_from_cache_within_ttl() -> None:
    transport = FakeTransport([_ok('{"a": 1}')])
    clock = _Clock()
    client = _client(transport, clock=clock)

    first = await client.fetch(LINES_URL)
    clock.now += 60 * 60 * 1000
    second = await client.fetch(LINES_URL)

    assert len(transport.calls) == 1
    assert first == second
    assert second.body == '{"a": 1}'


@pytest.mark.asyncio
async def test_stops_refetched_after_ttl_expires() -> None:
    transport = FakeTransport([_ok()])
    clock = _Clock()
    client = _client(transport, clock=clock, stops_ttl=60.0)

    await client.fetch(STOPS_URL)
    clock.now += 60_000
    await client.fetch(STOPS_URL)
    assert len(transport.calls) == 1

    clock.now += 1
    await client.fetch(STOPS_URL)
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_fleet_registry_shares_the_routes_ttl() -> None:
    transport = FakeTransport([_ok()])
    clock = _Clock()
    client = _client(transport, clock=clock, routes_ttl=120.0, stops_ttl=1.0)
    fleet_url = build_wfs_url(_BASE, "semob:Frota por operadora")

    await client.fetch(fleet_url)
    clock.now += 100_000
    await client.fetch(fleet_url)

    assert len(transport.calls) == 1
    assert client.cache.stats().per_dataset == {"fleet": 1}
    assert client.cache.ttl_seconds(DatasetKind.FLEET) == 120.0

@pytest.mark.asyncio
async def test_live_positions_always_hit_network() -> None:
    transport = FakeTransport([_ok()])
    client = _client(transport)

    for _ in range(3):
        result = await client.fetch(BUSES_URL)
        assert result.ok

    assert len(transport.calls) == 3
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_unrecognised_url_is_not_cached() -> None:
    transport = FakeTransport([_ok()])
    client = _client(transport)
    url = f"{_BASE}?service=WFS&typeName=semob:Outra camada"

    await client.fetch(url)
    await client.fetch(url)

    assert len(transport.calls) == 2
    assert client.cache.classify(url) is DatasetKind.UNKNOWN


@pytest.mark.asyncio
async def test_bypass_cache_refetches_and_refreshes_entry() -> None:
    transport = FakeTransport([_ok("old"), _ok("new")])
    client = _client(transport)

    assert (await client.fetch(LINES_URL)).body == "old"
    assert (await client.fetch(LINES_URL, bypass_cache=True)).body == "new"
    assert (await client.fetch(LINES_URL)).body == "new"
    assert len(transport.calls) == 2


# ---------------------------------------------------------------------------
# Coalescing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_request() -> None:
    transport = FakeTransport([_ok("shared")], delay=0.05)
    client = _client(transport)

    results = await asyncio.gather(*(client.fetch(BUSES_URL) for _ in range(5)))

    assert len(transport.calls) == 1
    assert all(result == results[0] for result in results)
    assert results[0].body == "shared"


@pytest.mark.asyncio
async def test_in_flight_entry_released_after_completion() -> None:
    transport = FakeTransport([_ok()], delay=0.01)
    client = _client(transport)

    task = asyncio.create_task(client.fetch(BUSES_URL))
    await asyncio.sleep(0)
    assert client.cache.stats().in_flight == 1
    await task
    await asyncio.sleep(0)
    assert client.cache.stats().in_flight == 0


# ---------------------------------------------------------------------------
# Size guard, timeout, retry
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_oversized_response_is_not_retried() -> None:
    transport = FakeTransport([SemobOversizedResponseError("too big", url=LINES_URL)])
    client = _client(transport)

    result = await client.fetch(LINES_URL)

    assert result.ok is False
    assert result.status == 413
    assert result.body == TOO_LARGE_TEXT
    assert len(transport.calls) == 1
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_transport_errors_are_retried_until_success() -> None:
    transport = FakeTransport(
        [
            SemobTransportError("connection reset", url=LINES_URL),
            SemobTransportError("connection reset", url=LINES_URL),
            _ok("third time"),
        ]
    )
    client = _client(transport)

    result = await client.fetch(LINES_URL)

    assert result.ok is True
    assert result.body == "third time"
    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_exhausted_retries_return_failure_and_do_not_cache() -> None:
    transport = FakeTransport([SemobTransportError("down", url=LINES_URL)])
    client = _client(transport)

    result = await client.fetch(LINES_URL)

    assert result.ok is False
    assert result.status == 0
    assert result.body == "down"
    assert len(transport.calls) == 3
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_unexpected_errors_are_reported_not_raised() -> None:
    transport = FakeTransport([RuntimeError("boom")])
    client = _client(transport)

    result = await client.fetch(LINES_URL)

    assert result.ok is False
    assert result.status == 0
    assert result.body == "Unexpected error: boom"
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_slow_attempts_time_out_with_408() -> None:
    transport = FakeTransport([_ok()], delay=0.5)
    client = _client(transport, request_timeout=0.01, max_attempts=2)

    result = await client.fetch(LINES_URL)

    assert result.ok is False
    assert result.status == 408
    assert result.body == TIMEOUT_TEXT
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_server_errors_retried_client_errors_final() -> None:
    transport = FakeTransport([TransportResponse(status=503, body="busy"), _ok("ok")])
    client = _client(transport)
    assert (await client.fetch(LINES_URL)).body == "ok"
    assert len(transport.calls) == 2

    transport = FakeTransport([TransportResponse(status=404, body="missing")])
    client = _client(transport)
    result = await client.fetch(LINES_URL)
    assert result.ok is False
    assert result.status == 404
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_backoff_grows_with_attempt_index(monkeypatch: pytest.MonkeyPatch) -> None:
    delays: list[float] = []
    real_sleep = asyncio.sleep

    async def _record(delay: float, *args: object) -> None:
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("pysemob.fetcher.asyncio.sleep", _record)
    transport = FakeTransport([SemobTransportError("down")])
    client = _client(transport, retry_backoff=1.0)

    await client.fetch(LINES_URL)

    assert delays == [1.0, 2.0]


# ---------------------------------------------------------------------------
# Cache maintenance
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_oldest_entries_evicted_beyond_ceiling() -> None:
    transport = FakeTransport([_ok()])
    client = _client(transport, cache_max_entries=2)
    urls = [build_wfs_url(_BASE, "semob:Linhas de onibus", max_features=n) for n in (1, 2, 3)]

    for url in urls:
        await client.fetch(url)

    assert len(client.cache) == 2
    assert client.cache.get_fresh(urls[0]) is None
    assert client.cache.get_fresh(urls[2]) is not None


@pytest.mark.asyncio
async def test_invalidate_and_stats() -> None:
    transport = FakeTransport([_ok()])
    client = _client(transport)

    await client.fetch(LINES_URL)
    await client.fetch(STOPS_URL)
    assert client.cache.stats().per_dataset == {"routes": 1, "stops": 1}

    assert client.cache.invalidate(DatasetKind.STOPS) == 1
    assert client.cache.stats().entries == 1

    client.cache.clear()
    assert len(client.cache) == 0
