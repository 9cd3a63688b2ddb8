"""HTTP transport with a streaming body size guard."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Protocol

import aiohttp

from pysemob._constants import USER_AGENT
from pysemob.exceptions import SemobOversizedResponseError, SemobTransportError

_logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclasses.dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP reply: status code and decoded body text."""

    status: int
    body: str


class Transport(Protocol):
    """Structural transport interface used by the fetch client.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`AiohttpTransport`) concrete.
    """

    async def get_text(
        self,
        url: str,
        *,
        max_bytes: int,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        ...


class AiohttpTransport:
    """GET transport backed by an aiohttp session.

    Rejects bodies whose advertised ``Content-Length`` exceeds ``max_bytes``
    without reading them, and aborts streaming reads as soon as the running
    total crosses the ceiling.
    """

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def get_text(
        self,
        url: str,
        *,
        max_bytes: int,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        request_headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if headers:
            request_headers.update(headers)

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=request_headers) as resp:
                declared = resp.content_length
                if declared is not None and declared > max_bytes:
                    raise SemobOversizedResponseError(
                        f"Response from {url} declares {declared} bytes (limit {max_bytes})",
                        status_code=resp.status,
                        url=url,
                    )

                chunks: list[bytes] = []
                total = 0
                async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
                    total += len(chunk)
                    if total > max_bytes:
                        raise SemobOversizedResponseError(
                            f"Response from {url} exceeded {max_bytes} bytes while streaming",
                            status_code=resp.status,
                            url=url,
                        )
                    chunks.append(chunk)

                encoding = resp.charset or "utf-8"
                try:
                    text = b"".join(chunks).decode(encoding, errors="replace")
                except LookupError:
                    text = b"".join(chunks).decode("utf-8", errors="replace")
                return TransportResponse(status=resp.status, body=text)
        except SemobTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise SemobTransportError(f"Request to {url} failed: {exc}", url=url) from exc
