"""Fetch client result."""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class FetchResult:
    """Outcome of a fetch, identical for cache hits and network hits.

    ``status`` is the HTTP status, or a marker for failures that produced
    none: ``0`` network error, ``408`` timeout, ``413`` oversized body.
    """

    ok: bool
    status: int
    body: str
