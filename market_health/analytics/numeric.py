from __future__ import annotations

import math


def to_float(value: object) -> float:
    """Parse a decimal string leniently; malformed or non-finite input counts as 0."""
    if value is None:
        return 0.0
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(parsed):
        return 0.0
    return parsed


def log_scaled(value: float, multiplier: float) -> float:
    """log10(value + 1) x multiplier, saturating at 100 and floored at 0."""
    if value <= 0:
        return 0.0
    return min(100.0, math.log10(value + 1) * multiplier)


def clamp_score(value: float) -> int:
    """Round half up to an integer and clamp to [0, 100]."""
    return int(max(0, min(100, math.floor(value + 0.5))))


def tier_lookup(value: float, tiers: tuple[tuple[float, int], ...], default: int) -> int:
    """
    Map ``value`` onto the first tier whose upper bound it does not exceed.

    Bounds are inclusive and compared at 9 decimal places, so a spread of
    exactly 0.5% lands in the 0.5 tier despite binary float noise.
    """
    normalized = round(value, 9)
    for upper_bound, result in tiers:
        if normalized <= upper_bound:
            return result
    return default
