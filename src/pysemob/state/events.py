"""Refresh state enums."""

from __future__ import annotations

from enum import StrEnum


class DataKind(StrEnum):
    BUSES = "buses"
    STOPS = "stops"
    LINES = "lines"


class FetchState(StrEnum):
    """Per-kind refresh state: ``idle -> fetching -> (idle | error)``."""

    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"
