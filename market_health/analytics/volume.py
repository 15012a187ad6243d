"""
Trailing 24-hour trade volume analysis.

Score Formula:
    score = 0.5 x min(100, log10(volume_24h + 1) x 15)
          + 0.3 x min(100, log10(trade_count + 1) x 30)
          + 0.2 x growth

    growth = min(100, 50 + change x 2) for a positive change,
             max(0, 50 + change x 2) otherwise

``volume_change_percent`` compares against a previous-period trade set when
one is supplied and its notional is positive; otherwise it is 0 and the
growth term sits at its neutral 50.
"""

from __future__ import annotations

import time
from typing import Iterable, Sequence

from market_health.analytics.numeric import clamp_score, log_scaled, to_float
from market_health.models.metrics import VolumeMetrics
from market_health.models.trade import Trade

VOLUME_WEIGHT = 0.5
TRADE_COUNT_WEIGHT = 0.3
GROWTH_WEIGHT = 0.2

DAY_MS = 24 * 60 * 60 * 1000


def notional(trades: Iterable[Trade]) -> float:
    """Quote-currency notional: sum of execution price x execution quantity."""
    return sum(to_float(trade.execution_price) * to_float(trade.execution_quantity) for trade in trades)


def growth_score(volume_change_percent: float) -> float:
    raw = 50 + volume_change_percent * 2
    if volume_change_percent > 0:
        return min(100.0, raw)
    return max(0.0, raw)


def volume_score(volume_24h: float, trade_count: int, volume_change_percent: float) -> int:
    total = (
        log_scaled(volume_24h, 15) * VOLUME_WEIGHT
        + log_scaled(trade_count, 30) * TRADE_COUNT_WEIGHT
        + growth_score(volume_change_percent) * GROWTH_WEIGHT
    )
    return clamp_score(total)


def default_volume_metrics() -> VolumeMetrics:
    return VolumeMetrics(
        score=0,
        volume_24h=0.0,
        trade_count=0,
        volume_change_percent=0.0,
        average_trade_size=0.0,
    )


def compute_volume_metrics(
    trades: Sequence[Trade],
    previous_trades: Sequence[Trade] | None = None,
    *,
    now_ms: int | None = None,
) -> VolumeMetrics:
    reference_ms = int(time.time() * 1000) if now_ms is None else now_ms
    cutoff = reference_ms - DAY_MS
    recent = [trade for trade in trades if trade.executed_at >= cutoff]
    if not recent:
        return default_volume_metrics()

    volume_24h = notional(recent)
    trade_count = len(recent)

    volume_change_percent = 0.0
    if previous_trades:
        previous_volume = notional(previous_trades)
        if previous_volume > 0:
            volume_change_percent = (volume_24h - previous_volume) / previous_volume * 100

    return VolumeMetrics(
        score=volume_score(volume_24h, trade_count, volume_change_percent),
        volume_24h=volume_24h,
        trade_count=trade_count,
        volume_change_percent=volume_change_percent,
        average_trade_size=volume_24h / trade_count,
    )
