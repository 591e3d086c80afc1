"""Numeric parsing and rounding helpers."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

_CLEAN_RE = re.compile(r"[^0-9,\.\-+eE]")


def safe_float(
    value: Any,
    *,
    allow_strings: bool = True,
    allow_bool: bool = False,
    fallback: float | None = None,
) -> float | None:
    """Return ``value`` coerced to ``float`` or ``fallback``.

    Parameters
    ----------
    value:
        Incoming object to coerce. ``None`` and empty strings result in
        ``fallback``.
    allow_strings:
        When ``True`` (default) string inputs are stripped of currency
        symbols, thousands separators and percentage signs before parsing.
    allow_bool:
        When ``False`` (default) booleans are rejected.
    fallback:
        Value returned when the input cannot be coerced. NaN never passes.
    """

    if value is None:
        return fallback

    if isinstance(value, bool):
        return float(value) if allow_bool else fallback

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return fallback if math.isnan(number) else number

    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="ignore")

    if isinstance(value, str):
        if not allow_strings:
            return fallback
        cleaned = _CLEAN_RE.sub("", value.strip().replace("%", ""))
        if not cleaned:
            return fallback
        # 17,500.50 -> 17500.50
        cleaned = cleaned.replace(",", "")
        try:
            number = float(cleaned)
        except ValueError:
            return fallback
        return fallback if math.isnan(number) else number

    if hasattr(value, "__float__"):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return fallback
        return fallback if math.isnan(number) else number

    return fallback


def is_finite(value: Any) -> bool:
    """Return ``True`` when ``value`` is a real, finite number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def round_to(value: float, digits: int = 2) -> float:
    """Round ``value`` half-up (towards +inf) to ``digits`` decimals.

    Non-finite input yields ``0.0``.
    """
    if not is_finite(value):
        return 0.0
    factor = 10.0**digits
    return math.floor(value * factor + 0.5) / factor


def round_currency(value: float) -> int:
    """Round a currency amount to the nearest integer unit (half-up)."""
    if not is_finite(value):
        return 0
    return int(math.floor(value + 0.5))


__all__ = ["is_finite", "round_currency", "round_to", "safe_float"]
