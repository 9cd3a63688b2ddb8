"""Client configuration for pysemob."""

from __future__ import annotations

import dataclasses
import os
from typing import Any
from urllib.parse import urlsplit

from pysemob._constants import (
    BASE_URL,
    BUSES_TYPE_NAME,
    FLEET_TYPE_NAME,
    LINES_TYPE_NAME,
    MAX_RESPONSE_BYTES,
    STOPS_TYPE_NAME,
)
from pysemob.exceptions import SemobConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(value)
    except ValueError as exc:
        raise SemobConfigError(f"{env_key} must be a {kind.__name__}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SemobConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        WFS endpoint of the geodata service.
    buses_type_name, stops_type_name, lines_type_name, fleet_type_name : str
        WFS ``typeName`` of each dataset. Also used to classify request
        URLs into cache buckets.
    buses_max_features, stops_max_features, lines_max_features, fleet_max_features : int
        ``maxFeatures`` cap sent with each dataset query.
    request_timeout : float
        Seconds allowed for a single fetch attempt.
    max_attempts : int
        Total fetch attempts (first try included).
    retry_backoff : float
        Seconds of backoff per attempt index (attempt 1 waits 1x, attempt
        2 waits 2x, ...).
    max_response_bytes : int
        Response bodies above this size are rejected without retry.
    cache_max_entries : int
        Maximum number of cached responses; oldest entries are evicted.
    routes_ttl : float
        Cache TTL in seconds for the route/line dataset and the fleet registry.
    stops_ttl : float
        Cache TTL in seconds for the stops dataset.
    poll_interval : float
        Seconds between live bus position refreshes.
    bounds_min_shift_m : float
        Minimum movement of the view center (meters) that triggers a
        stops refresh.
    bounds_min_extent_change : float
        Minimum relative change of the view extent that triggers a stops
        refresh.
    bridge_fetch_timeout : float
        Seconds the rendering surface waits for a proxied fetch reply.
    proxy_allowed_hosts : tuple of str
        Hosts the bridge may proxy fetches to. Empty means the host of
        ``base_url`` only.
    toast_duration_ms : int
        Duration of transient status toasts on the rendering surface.
    only_active_stops : bool
        Drop stops whose status marks them inactive.
    enrich_buses : bool
        Join live positions with the fleet registry so pushed buses carry
        operator details.
    """

    base_url: str = BASE_URL
    buses_type_name: str = BUSES_TYPE_NAME
    stops_type_name: str = STOPS_TYPE_NAME
    lines_type_name: str = LINES_TYPE_NAME
    fleet_type_name: str = FLEET_TYPE_NAME
    buses_max_features: int = 500
    stops_max_features: int = 200
    lines_max_features: int = 100
    fleet_max_features: int = 2000
    request_timeout: float = 15.0
    max_attempts: int = 3
    retry_backoff: float = 1.0
    max_response_bytes: int = MAX_RESPONSE_BYTES
    cache_max_entries: int = 100
    routes_ttl: float = 12 * 3600
    stops_ttl: float = 30 * 60
    poll_interval: float = 10.0
    bounds_min_shift_m: float = 250.0
    bounds_min_extent_change: float = 0.25
    bridge_fetch_timeout: float = 15.0
    proxy_allowed_hosts: tuple[str, ...] = ()
    toast_duration_ms: int = 3000
    only_active_stops: bool = True
    enrich_buses: bool = False

    def __post_init__(self) -> None:
        if not self.base_url.strip():
            raise SemobConfigError("base_url must be non-empty")
        if self.max_attempts < 1:
            raise SemobConfigError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.request_timeout <= 0:
            raise SemobConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.max_response_bytes <= 0:
            raise SemobConfigError("max_response_bytes must be positive")
        if self.poll_interval <= 0:
            raise SemobConfigError(f"poll_interval must be positive, got {self.poll_interval}")

    @property
    def allowed_hosts(self) -> frozenset[str]:
        """Hosts the bridge fetch proxy may contact."""
        if self.proxy_allowed_hosts:
            return frozenset(host.lower() for host in self.proxy_allowed_hosts)
        host = urlsplit(self.base_url).hostname or ""
        return frozenset({host.lower()})

    @classmethod
    def from_env(cls, **overrides: Any) -> SemobConfig:
        """Create configuration from environment variables.

        Reads optional ``SEMOB_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SemobConfig
            Populated configuration.

        Raises
        ------
        SemobConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "SEMOB_BASE_URL": "base_url",
            "SEMOB_BUSES_TYPE_NAME": "buses_type_name",
            "SEMOB_STOPS_TYPE_NAME": "stops_type_name",
            "SEMOB_LINES_TYPE_NAME": "lines_type_name",
            "SEMOB_FLEET_TYPE_NAME": "fleet_type_name",
        }
        _ENV_INT_MAP = {
            "SEMOB_BUSES_MAX_FEATURES": "buses_max_features",
            "SEMOB_STOPS_MAX_FEATURES": "stops_max_features",
            "SEMOB_LINES_MAX_FEATURES": "lines_max_features",
            "SEMOB_FLEET_MAX_FEATURES": "fleet_max_features",
            "SEMOB_MAX_ATTEMPTS": "max_attempts",
            "SEMOB_MAX_RESPONSE_BYTES": "max_response_bytes",
            "SEMOB_CACHE_MAX_ENTRIES": "cache_max_entries",
            "SEMOB_TOAST_DURATION_MS": "toast_duration_ms",
        }
        _ENV_FLOAT_MAP = {
            "SEMOB_REQUEST_TIMEOUT": "request_timeout",
            "SEMOB_RETRY_BACKOFF": "retry_backoff",
            "SEMOB_ROUTES_TTL": "routes_ttl",
            "SEMOB_STOPS_TTL": "stops_ttl",
            "SEMOB_POLL_INTERVAL": "poll_interval",
            "SEMOB_BOUNDS_MIN_SHIFT_M": "bounds_min_shift_m",
            "SEMOB_BOUNDS_MIN_EXTENT_CHANGE": "bounds_min_extent_change",
            "SEMOB_BRIDGE_FETCH_TIMEOUT": "bridge_fetch_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, int)
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, float)

        hosts_env = env.get("SEMOB_PROXY_ALLOWED_HOSTS")
        if hosts_env is not None and "proxy_allowed_hosts" not in overrides:
            config_kwargs["proxy_allowed_hosts"] = tuple(h.strip() for h in hosts_env.split(",") if h.strip())

        if "only_active_stops" not in overrides:
            config_kwargs["only_active_stops"] = _env_bool(env.get("SEMOB_ONLY_ACTIVE_STOPS"), True)
        if "enrich_buses" not in overrides:
            config_kwargs["enrich_buses"] = _env_bool(env.get("SEMOB_ENRICH_BUSES"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
