"""Normalization helpers.

Centralizes lenient parsing, placeholder handling and line-code
comparison.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pysemob._constants import MAIN_OPERATORS, SENTINEL_STRINGS

_NON_DIGITS = re.compile(r"\D+")

_ACTIVE_STATUS_TOKENS: frozenset[str] = frozenset({"1", "S", "SIM", "ATIVA", "ATIVO", "TRUE", "T"})
_INACTIVE_STATUS_TOKENS: frozenset[str] = frozenset({"0", "N", "NAO", "NÃO", "INATIVA", "INATIVO", "FALSE", "F"})


def is_sentinel(value: Any) -> bool:
    """Return True for values the upstream uses to mean "not available"."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip().upper() in SENTINEL_STRINGS
    return False


def safe_float(value: Any) -> float | None:
    """Parse a number, accepting a comma as decimal separator."""
    if is_sentinel(value) or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if is_sentinel(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text if text else None


def first_present(properties: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Return the first value under *keys* that is not a sentinel."""
    for key in keys:
        value = properties.get(key)
        if not is_sentinel(value):
            return value
    return None


def normalize_line_code(code: Any) -> str:
    """Trimmed, uppercased form of a line code (``""`` when absent)."""
    text = safe_str(code)
    return text.upper() if text else ""


def digits_only(code: Any) -> str:
    """Digits of a line code with leading zeros stripped.

    ``"0.123"`` and ``"0123"`` both become ``"123"``.
    """
    digits = _NON_DIGITS.sub("", normalize_line_code(code))
    return digits.lstrip("0")


def line_codes_match(left: Any, right: Any) -> bool:
    """Return True if two line codes refer to the same line.

    Codes match when their trimmed, uppercased forms are equal, or when
    their digit-only forms are non-empty and equal. The upstream dataset
    is inconsistent about zero-padding and separators.
    """
    raw_left = normalize_line_code(left)
    raw_right = normalize_line_code(right)
    if not raw_left or not raw_right:
        return False
    if raw_left == raw_right:
        return True
    digits_left = digits_only(raw_left)
    return bool(digits_left) and digits_left == digits_only(raw_right)


def matches_any_line(code: Any, candidates: Iterable[Any]) -> bool:
    return any(line_codes_match(code, candidate) for candidate in candidates)


def is_active_status(value: Any) -> bool:
    """Interpret a stop status flag.

    Recognised "inactive" tokens mark a stop inactive. Empty, missing or
    unrecognised values are treated as active.
    """
    if isinstance(value, bool):
        return value
    text = safe_str(value)
    if text is None:
        return True
    token = text.upper()
    if token in _ACTIVE_STATUS_TOKENS:
        return True
    return token not in _INACTIVE_STATUS_TOKENS


def format_fare(value: float | None) -> str | None:
    """Render a fare as ``R$ 4,50``."""
    if value is None:
        return None
    return f"R$ {value:.2f}".replace(".", ",")


def normalize_prefix(value: Any) -> str:
    """Vehicle prefix as a join key: trimmed, leading zeros dropped."""
    text = safe_str(value) or ""
    if text.isdigit():
        return text.lstrip("0") or "0"
    return text.upper()


def main_operator(name: str | None) -> tuple[str | None, str | None]:
    """Shorten a main operator's name and return its marker colour.

    Names not matching a main operator are returned unchanged with no
    colour.
    """
    if not name:
        return name, None
    upper = name.upper()
    for token, short_name, color in MAIN_OPERATORS:
        if token in upper:
            return short_name, color
    return name, None
