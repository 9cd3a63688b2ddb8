"""Response cache and in-flight request registry for the fetch client.

Both maps are owned by one :class:`ResponseCache` instance that is passed to
every component that fetches; nothing is module-global. All access happens
on the event loop thread.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections import OrderedDict
from collections.abc import Callable

from pysemob._api.wfs import DatasetKind, classify_dataset
from pysemob.config import SemobConfig
from pysemob.models.fetch import FetchResult

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclasses.dataclass(frozen=True)
class CacheEntry:
    """A cached successful response, keyed by exact request URL."""

    ok: bool
    status: int
    body: str
    fetched_at_ms: int
    dataset: DatasetKind = DatasetKind.UNKNOWN

    def to_result(self) -> FetchResult:
        return FetchResult(ok=self.ok, status=self.status, body=self.body)


@dataclasses.dataclass(frozen=True)
class CacheStats:
    entries: int
    in_flight: int
    per_dataset: dict[str, int]


class ResponseCache:
    """URL-keyed response cache with dataset-dependent TTLs.

    Parameters
    ----------
    config : SemobConfig
        Supplies the TTLs, the dataset type names used for classification
        and the entry ceiling.
    clock : callable, optional
        Returns the current time in epoch milliseconds. Injected by tests.
    """

    def __init__(self, config: SemobConfig, *, clock: Callable[[], int] | None = None) -> None:
        self._config = config
        self._clock = clock or _now_ms
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task[FetchResult]] = {}

    # ------------------------------------------------------------------
    # TTL policy
    # ------------------------------------------------------------------

    def classify(self, url: str) -> DatasetKind:
        return classify_dataset(url, self._config)

    def ttl_seconds(self, kind: DatasetKind) -> float:
        """TTL for a dataset bucket; ``0`` means never cached."""
        if kind is DatasetKind.ROUTES or kind is DatasetKind.FLEET:
            return self._config.routes_ttl
        if kind is DatasetKind.STOPS:
            return self._config.stops_ttl
        return 0.0

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get_fresh(self, url: str) -> CacheEntry | None:
        """Return the entry for *url* if it is still within its TTL."""
        entry = self._entries.get(url)
        if entry is None:
            return None
        ttl = self.ttl_seconds(entry.dataset)
        if ttl <= 0:
            return None
        age_ms = self._clock() - entry.fetched_at_ms
        if age_ms > ttl * 1000:
            return None
        return entry

    def store(self, url: str, result: FetchResult) -> CacheEntry | None:
        """Cache a successful result for a cacheable URL.

        Failed results and non-cacheable datasets are ignored. The oldest
        entries are evicted beyond ``cache_max_entries``.
        """
        if not result.ok:
            return None
        kind = self.classify(url)
        if self.ttl_seconds(kind) <= 0:
            return None
        entry = CacheEntry(
            ok=result.ok,
            status=result.status,
            body=result.body,
            fetched_at_ms=self._clock(),
            dataset=kind,
        )
        self._entries[url] = entry
        self._entries.move_to_end(url)
        while len(self._entries) > max(self._config.cache_max_entries, 0):
            evicted_url, _ = self._entries.popitem(last=False)
            _logger.debug("Evicted cached response for %s", evicted_url)
        return entry

    def invalidate(self, kind: DatasetKind) -> int:
        """Drop every entry of one dataset bucket. Returns the count dropped."""
        stale = [url for url, entry in self._entries.items() if entry.dataset is kind]
        for url in stale:
            del self._entries[url]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    # ------------------------------------------------------------------
    # In-flight requests
    # ------------------------------------------------------------------

    def in_flight(self, url: str) -> asyncio.Task[FetchResult] | None:
        task = self._in_flight.get(url)
        if task is not None and task.done():
            return None
        return task

    def track(self, url: str, task: asyncio.Task[FetchResult]) -> None:
        """Register *task* as the single in-flight request for *url*."""
        self._in_flight[url] = task

        def _release(done: asyncio.Task[FetchResult]) -> None:
            if self._in_flight.get(url) is done:
                del self._in_flight[url]

        task.add_done_callback(_release)

    def stats(self) -> CacheStats:
        per_dataset: dict[str, int] = {}
        for entry in self._entries.values():
            per_dataset[entry.dataset.value] = per_dataset.get(entry.dataset.value, 0) + 1
        return CacheStats(
            entries=len(self._entries),
            in_flight=sum(1 for task in self._in_flight.values() if not task.done()),
            per_dataset=per_dataset,
        )

    def __len__(self) -> int:
        return len(self._entries)
