"""Custom exception hierarchy for pysemob."""

from __future__ import annotations


class SemobError(Exception):
    """Base exception for all pysemob errors."""


class SemobConfigError(SemobError):
    """Invalid or missing configuration."""


class SemobTransportError(SemobError):
    """HTTP-level failure (network, non-2xx, undecodable body)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class SemobTimeoutError(SemobTransportError):
    """A single fetch attempt exceeded its time budget.

    Counted as a failed attempt and retried like any other transient
    transport failure.
    """


class SemobOversizedResponseError(SemobTransportError):
    """Response body exceeded the configured size ceiling.

    Terminal: the fetch client never retries this failure.
    """


class SemobMalformedDataError(SemobError):
    """A single feature could not be turned into a domain entity.

    Raised per feature; the transform layer skips the feature and keeps
    the rest of the collection.
    """


class SemobInvalidGeometryError(SemobMalformedDataError):
    """Coordinates fall outside the plausibility box for the region."""

    def __init__(self, message: str, *, lat: float | None = None, lon: float | None = None) -> None:
        self.lat = lat
        self.lon = lon
        super().__init__(message)


class SemobBridgeError(SemobError):
    """Bridge protocol failure (undecodable or unknown message)."""


class SemobBridgeTimeoutError(SemobBridgeError):
    """A proxied fetch reply never arrived from the host.

    Raised on the surface side after the pending request is removed.
    """

    def __init__(self, message: str, *, request_id: int, url: str = "") -> None:
        self.request_id = request_id
        self.url = url
        super().__init__(message)
