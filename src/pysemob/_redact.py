"""Helpers for compact debug logging.

Geodata responses are large (hundreds of features, megabytes of route
geometry). This module shrinks payloads, URLs and bodies to a readable size
before they are handed to DEBUG/WARNING logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_BULKY_KEYS: frozenset[str] = frozenset(
    {
        "coordinates",
        "features",
        "geometry",
        "body",
        "text",
    }
)


def summarize_for_log(
    value: Any,
    *,
    max_string: int = 256,
    max_items: int = 8,
    _depth: int = 0,
) -> Any:
    """Return a shortened copy of *value* suitable for logs."""
    if _depth > 10:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<{len(value)} chars>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        summarized: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key in _BULKY_KEYS and isinstance(v, (Sequence, Mapping)) and not isinstance(v, str):
                summarized[key] = f"<{type(v).__name__}:{len(v)}>"
            else:
                summarized[key] = summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
        return summarized

    if isinstance(value, Sequence):
        head = [summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1) for v in value[:max_items]]
        if len(value) > max_items:
            head.append(f"<+{len(value) - max_items} more>")
        return head

    return repr(value)
