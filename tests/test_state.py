from __future__ import annotations

from datetime import UTC, datetime

from pysemob.models.bounds import MapBounds
from pysemob.state.events import DataKind, FetchState
from pysemob.state.policy import bounds_moved_significantly
from pysemob.state.store import SnapshotStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


VIEW = MapBounds(north=-15.7, south=-15.9, east=-47.8, west=-48.0)


def test_replace_swaps_snapshot_and_marks_idle() -> None:
    store = SnapshotStore(clock=_dt)

    store.begin(DataKind.STOPS)
    assert store.is_fetching(DataKind.STOPS)

    store.replace(DataKind.STOPS, ["a", "b"])

    assert store.snapshot(DataKind.STOPS) == ("a", "b")
    status = store.status(DataKind.STOPS)
    assert status.state is FetchState.IDLE
    assert status.item_count == 2
    assert status.last_success_at == _dt()


def test_failure_keeps_previous_snapshot() -> None:
    store = SnapshotStore(clock=_dt)
    store.replace(DataKind.BUSES, ["bus"])

    store.begin(DataKind.BUSES)
    store.fail(DataKind.BUSES, "HTTP 503")

    assert store.snapshot(DataKind.BUSES) == ("bus",)
    assert store.state(DataKind.BUSES) is FetchState.ERROR
    assert store.status(DataKind.BUSES).last_error == "HTTP 503"
    assert store.status(DataKind.BUSES).last_success_at == _dt()

    store.reset(DataKind.BUSES)
    assert store.state(DataKind.BUSES) is FetchState.IDLE


def test_kinds_are_independent() -> None:
    store = SnapshotStore(clock=_dt)
    store.begin(DataKind.LINES)

    assert not store.is_fetching(DataKind.BUSES)
    assert store.as_dict()["lines"]["state"] == "fetching"
    assert store.as_dict()["stops"] == {
        "state": "idle",
        "item_count": 0,
        "last_success_at": None,
        "last_error": None,
    }


def _moved(previous: MapBounds | None, current: MapBounds) -> bool:
    return bounds_moved_significantly(previous, current, min_shift_m=250.0, min_extent_change=0.25)


def test_first_bounds_always_trigger() -> None:
    assert _moved(None, VIEW)


def test_small_pan_is_ignored() -> None:
    # ~11 m north.
    nudged = MapBounds(north=-15.6999, south=-15.8999, east=-47.8, west=-48.0)
    assert not _moved(VIEW, nudged)


def test_large_pan_triggers() -> None:
    # ~1.1 km north.
    panned = MapBounds(north=-15.69, south=-15.89, east=-47.8, west=-48.0)
    assert _moved(VIEW, panned)


def test_zoom_out_triggers_through_extent_change() -> None:
    zoomed = MapBounds(north=-15.65, south=-15.95, east=-47.75, west=-48.05)
    assert _moved(VIEW, zoomed)

    slightly = MapBounds(north=-15.699, south=-15.901, east=-47.799, west=-48.001)
    assert not _moved(VIEW, slightly)
