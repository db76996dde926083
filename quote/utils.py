"""Utility helpers for quote calculation.

Prices in this project are whole currency units. Every finalized price is
rounded half-up (never banker's rounding) and most are snapped to the nearest
10 units. Postal codes are six-digit Indian PIN codes.
"""

from __future__ import annotations

import math
from typing import Optional, Union

Number = Union[int, float]


def round_half_up(value: Number) -> int:
    """Round ``value`` to the nearest integer with halves rounded up.

    :func:`round` uses banker's rounding which would turn ``2.5`` into ``2``;
    quoted prices always round ``.5`` upwards.
    """

    return int(math.floor(float(value) + 0.5))


def round_to_nearest_10(value: Number) -> int:
    """Return ``value`` rounded half-up to the nearest multiple of 10."""

    return round_half_up(float(value) / 10.0) * 10


def sanitize_pincode(pincode: Union[str, int, None]) -> Optional[str]:
    """Return a six-digit PIN code string or ``None`` when invalid.

    Whitespace and separators are ignored so ``"400 001"`` and ``400001``
    both normalise to ``"400001"``.

    Args:
        pincode: Raw value supplied by the caller.

    Returns:
        Optional[str]: Six digits, or ``None`` if fewer/more digits remain or
        the code starts with ``0``.
    """

    if pincode is None:
        return None
    digits = "".join(ch for ch in str(pincode) if ch.isdigit())
    if len(digits) != 6 or digits.startswith("0"):
        return None
    return digits


def estimate_transit_days(distance_km: Number, km_per_day: int = 400) -> int:
    """Return whole transit days for ``distance_km`` at ``km_per_day``.

    A shipment always takes at least one day.
    """

    return max(1, math.ceil(float(distance_km) / km_per_day))


def format_days(days: int) -> str:
    """Return a display string such as ``"1 Day"`` or ``"3 Days"``."""

    return f"{days} Day{'s' if days > 1 else ''}"
