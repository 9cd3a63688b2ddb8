"""Cache-aware fetch client with coalescing, size guard, timeout and retry."""

from __future__ import annotations

import asyncio
import logging

from pysemob._api.wfs import DatasetKind
from pysemob._cache import ResponseCache
from pysemob._constants import (
    STATUS_NETWORK_ERROR,
    STATUS_TIMEOUT,
    STATUS_TOO_LARGE,
    TIMEOUT_TEXT,
    TOO_LARGE_TEXT,
)
from pysemob._redact import summarize_for_log
from pysemob._transport import Transport
from pysemob.config import SemobConfig
from pysemob.exceptions import SemobOversizedResponseError, SemobTimeoutError, SemobTransportError
from pysemob.models.fetch import FetchResult

_logger = logging.getLogger(__name__)


class FetchClient:
    """Generic GET wrapper used for every geodata request.

    :meth:`fetch` never raises: failures come back as a
    :class:`FetchResult` with ``ok=False`` and a status marker. Cache hits
    and network hits have the same shape.
    """

    def __init__(self, config: SemobConfig, transport: Transport, cache: ResponseCache) -> None:
        self._config = config
        self._transport = transport
        self._cache = cache

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def fetch(self, url: str, *, bypass_cache: bool = False) -> FetchResult:
        """Fetch *url*, serving from cache when fresh.

        Parameters
        ----------
        url : str
            Exact request URL; also the cache key.
        bypass_cache : bool
            Skip the cache lookup. A successful result is still stored for
            cacheable datasets, and a call already in flight for the same
            URL is still joined.
        """
        if not bypass_cache:
            entry = self._cache.get_fresh(url)
            if entry is not None:
                _logger.debug("Cache hit for %s", summarize_for_log(url))
                return entry.to_result()

        task = self._cache.in_flight(url)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch_and_store(url))
            self._cache.track(url, task)
        else:
            _logger.debug("Joining in-flight request for %s", summarize_for_log(url))

        # Cancelling one caller leaves the shared request running.
        return await asyncio.shield(task)

    async def _fetch_and_store(self, url: str) -> FetchResult:
        kind = self._cache.classify(url)
        try:
            result = await self._fetch_with_retry(url, kind)
        except Exception as exc:
            _logger.warning("Unexpected failure fetching %s", summarize_for_log(url), exc_info=True)
            return FetchResult(ok=False, status=STATUS_NETWORK_ERROR, body=f"Unexpected error: {exc}")
        if result.ok:
            self._cache.store(url, result)
        return result

    async def _attempt(self, url: str) -> FetchResult:
        try:
            response = await asyncio.wait_for(
                self._transport.get_text(url, max_bytes=self._config.max_response_bytes),
                timeout=self._config.request_timeout,
            )
        except TimeoutError as exc:
            raise SemobTimeoutError(
                f"Request to {url} timed out after {self._config.request_timeout}s",
                status_code=STATUS_TIMEOUT,
                url=url,
            ) from exc
        return FetchResult(ok=200 <= response.status < 300, status=response.status, body=response.body)

    async def _fetch_with_retry(self, url: str, kind: DatasetKind) -> FetchResult:
        attempts = self._config.max_attempts
        last = FetchResult(ok=False, status=STATUS_NETWORK_ERROR, body="Unknown error")

        for attempt in range(1, attempts + 1):
            _logger.debug("Fetching %s (%s) attempt %d/%d", summarize_for_log(url), kind.value, attempt, attempts)
            try:
                result = await self._attempt(url)
            except SemobOversizedResponseError as exc:
                _logger.warning("Rejected oversized response: %s", exc)
                return FetchResult(ok=False, status=STATUS_TOO_LARGE, body=TOO_LARGE_TEXT)
            except SemobTimeoutError as exc:
                _logger.debug("Attempt %d timed out: %s", attempt, exc)
                last = FetchResult(ok=False, status=STATUS_TIMEOUT, body=TIMEOUT_TEXT)
            except SemobTransportError as exc:
                _logger.debug("Attempt %d failed: %s", attempt, exc)
                last = FetchResult(ok=False, status=STATUS_NETWORK_ERROR, body=str(exc) or type(exc).__name__)
            else:
                if result.ok:
                    return result
                last = result
                if result.status < 500:
                    # 4xx is final.
                    _logger.warning("HTTP %d from %s: %s", result.status, summarize_for_log(url), summarize_for_log(result.body))
                    return result

            if attempt < attempts:
                await asyncio.sleep(attempt * self._config.retry_backoff)

        _logger.warning(
            "Giving up on %s after %d attempts (status %d)",
            summarize_for_log(url),
            attempts,
            last.status,
        )
        return last
