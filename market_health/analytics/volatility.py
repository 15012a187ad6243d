"""
Trade price volatility analysis.

Measures price dispersion of the trades executed inside a trailing window
(60 minutes by default) and maps it onto a stability score.

Key Metrics:
    - **Mean price**: Arithmetic mean of execution prices in the window
    - **Standard deviation**: Population standard deviation (divide by N)
    - **Volatility %**: standard_deviation / mean_price x 100
    - **Price changes**: Percent deltas between consecutive trades, oldest first

Levels:
    volatility % < 1 → LOW, < 3 → MODERATE, < 7 → HIGH, else EXTREME

Score (piecewise linear per level, rounded and clamped to [0, 100]):
    LOW       100 - pct x 10
    MODERATE  80 - (pct - 1) x 15
    HIGH      50 - (pct - 3) x 8
    EXTREME   max(0, 30 - (pct - 7) x 3)

An empty window is not an error: it yields score 0 and level LOW.
"""

from __future__ import annotations

import statistics
import time
from typing import Sequence

from market_health.analytics.numeric import clamp_score, to_float
from market_health.models.metrics import VolatilityLevel, VolatilityMetrics
from market_health.models.trade import Trade

DEFAULT_WINDOW_MINUTES = 60.0


def _now_ms() -> int:
    return int(time.time() * 1000)


def classify_volatility(volatility_percent: float) -> VolatilityLevel:
    if volatility_percent < 1:
        return "LOW"
    if volatility_percent < 3:
        return "MODERATE"
    if volatility_percent < 7:
        return "HIGH"
    return "EXTREME"


def volatility_score(volatility_percent: float, level: VolatilityLevel) -> int:
    if level == "LOW":
        score = 100 - volatility_percent * 10
    elif level == "MODERATE":
        score = 80 - (volatility_percent - 1) * 15
    elif level == "HIGH":
        score = 50 - (volatility_percent - 3) * 8
    else:
        score = max(0.0, 30 - (volatility_percent - 7) * 3)
    return clamp_score(score)


def compute_price_changes(prices: Sequence[float]) -> tuple[float, ...]:
    """Percent change between each consecutive pair; a zero base price yields 0."""
    changes: list[float] = []
    for previous, current in zip(prices, prices[1:]):
        if previous == 0:
            changes.append(0.0)
            continue
        changes.append((current - previous) / previous * 100)
    return tuple(changes)


def filter_window(trades: Sequence[Trade], window_ms: float, now_ms: int) -> list[Trade]:
    cutoff = now_ms - window_ms
    return [trade for trade in trades if trade.executed_at >= cutoff]


def default_volatility_metrics() -> VolatilityMetrics:
    return VolatilityMetrics(
        score=0,
        standard_deviation=0.0,
        volatility_percent=0.0,
        level="LOW",
        mean_price=0.0,
        price_changes=(),
        trade_count=0,
    )


def compute_volatility_metrics(
    trades: Sequence[Trade],
    *,
    window_minutes: float = DEFAULT_WINDOW_MINUTES,
    now_ms: int | None = None,
) -> VolatilityMetrics:
    """
    Compute volatility metrics over trades executed within ``window_minutes``.

    Args:
        trades: Trade history in any order (typically most recent first).
        window_minutes: Trailing window length; older trades are ignored.
        now_ms: Reference time in epoch milliseconds (defaults to the wall clock).

    Returns:
        VolatilityMetrics; the zeroed default when no trade falls in the window.
    """
    reference_ms = _now_ms() if now_ms is None else now_ms
    window_trades = filter_window(trades, window_minutes * 60 * 1000, reference_ms)
    if not window_trades:
        return default_volatility_metrics()

    # Chronological order for the consecutive deltas; sorted() keeps ties stable
    chronological = sorted(window_trades, key=lambda trade: trade.executed_at)
    prices = [to_float(trade.execution_price) for trade in chronological]

    mean_price = statistics.fmean(prices)
    standard_deviation = statistics.pstdev(prices, mu=mean_price)
    volatility_percent = standard_deviation / mean_price * 100 if mean_price > 0 else 0.0
    level = classify_volatility(volatility_percent)

    return VolatilityMetrics(
        score=volatility_score(volatility_percent, level),
        standard_deviation=standard_deviation,
        volatility_percent=volatility_percent,
        level=level,
        mean_price=mean_price,
        price_changes=compute_price_changes(prices),
        trade_count=len(prices),
    )
