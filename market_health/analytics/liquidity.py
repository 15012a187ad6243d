"""
Order book liquidity analysis.

Turns one order book snapshot into a liquidity score plus the raw depth and
spread figures behind it.

Key Metrics:
    - **Mid price**: (best bid + best ask) / 2, 0 when either side is empty
    - **Spread**: |best ask - best bid|, and as a percentage of mid price
    - **Depth**: Summed quantity over every level of each side
    - **Band depth**: Quantity resting within 1% and 5% of mid price
      (bids priced >= mid x (1 - X%), asks priced <= mid x (1 + X%))

Score Formula:
    score = 0.40 x max(0, 100 - spread_percent x 20)
          + 0.30 x min(100, log10(total_depth + 1) x 20)
          + 0.15 x min(100, log10(depth_within_1pct + 1) x 25)
          + 0.15 x min(100, log10(depth_within_5pct + 1) x 20)

    A one-sided or empty book has no spread, so the spread term contributes
    nothing and the score comes from the depth terms alone.

Example:
    >>> metrics = compute_liquidity_metrics(snapshot)
    >>> print(f"{metrics.spread_percent:.2f}% spread, score {metrics.score}")
"""

from __future__ import annotations

from typing import Sequence

from market_health.analytics.numeric import clamp_score, log_scaled, to_float
from market_health.models.metrics import LiquidityMetrics
from market_health.models.orderbook import OrderBookSnapshot, PriceLevel

SPREAD_WEIGHT = 0.40
DEPTH_WEIGHT = 0.30
DEPTH_1PCT_WEIGHT = 0.15
DEPTH_5PCT_WEIGHT = 0.15

# Percentage points of score lost per 1% of spread
SPREAD_PENALTY_PER_PCT = 20

BAND_1PCT = 0.01
BAND_5PCT = 0.05


def _levels(levels: Sequence[PriceLevel]) -> list[tuple[float, float]]:
    return [(to_float(level.price), to_float(level.quantity)) for level in levels]


def _side_depth(levels: Sequence[tuple[float, float]]) -> float:
    return sum(quantity for _price, quantity in levels)


def compute_band_depth(
    bids: Sequence[tuple[float, float]],
    asks: Sequence[tuple[float, float]],
    mid_price: float,
    band: float,
) -> float:
    """
    Sum quantity resting within ``band`` (a fraction, 0.01 = 1%) of mid price.

    Returns 0 when mid price is 0, since there is no reference to measure from.
    """
    if mid_price <= 0:
        return 0.0
    upper_bound = mid_price * (1 + band)
    lower_bound = mid_price * (1 - band)
    bid_depth = sum(quantity for price, quantity in bids if price >= lower_bound)
    ask_depth = sum(quantity for price, quantity in asks if price <= upper_bound)
    return bid_depth + ask_depth


def compute_liquidity_score(
    *,
    spread_percent: float,
    total_depth: float,
    depth_within_1pct: float,
    depth_within_5pct: float,
    two_sided: bool = True,
) -> int:
    spread_score = max(0.0, 100 - spread_percent * SPREAD_PENALTY_PER_PCT) if two_sided else 0.0
    depth_score = log_scaled(total_depth, 20)
    depth_1pct_score = log_scaled(depth_within_1pct, 25)
    depth_5pct_score = log_scaled(depth_within_5pct, 20)

    total = (
        spread_score * SPREAD_WEIGHT
        + depth_score * DEPTH_WEIGHT
        + depth_1pct_score * DEPTH_1PCT_WEIGHT
        + depth_5pct_score * DEPTH_5PCT_WEIGHT
    )
    return clamp_score(total)


def compute_liquidity_metrics(snapshot: OrderBookSnapshot) -> LiquidityMetrics:
    """
    Compute liquidity metrics from a single order book snapshot.

    Never raises on a well-typed snapshot: an empty book yields zero depth,
    zero spread, mid price 0 and score 0.
    """
    bids = _levels(snapshot.buys)
    asks = _levels(snapshot.sells)

    best_bid = bids[0][0] if bids else 0.0
    best_ask = asks[0][0] if asks else 0.0
    two_sided = best_bid > 0 and best_ask > 0

    if two_sided:
        mid_price = (best_bid + best_ask) / 2
        spread = abs(best_ask - best_bid)
        spread_percent = spread / mid_price * 100
    else:
        mid_price = 0.0
        spread = 0.0
        spread_percent = 0.0

    bid_depth = _side_depth(bids)
    ask_depth = _side_depth(asks)
    total_depth = bid_depth + ask_depth
    depth_within_1pct = compute_band_depth(bids, asks, mid_price, BAND_1PCT)
    depth_within_5pct = compute_band_depth(bids, asks, mid_price, BAND_5PCT)

    score = compute_liquidity_score(
        spread_percent=spread_percent,
        total_depth=total_depth,
        depth_within_1pct=depth_within_1pct,
        depth_within_5pct=depth_within_5pct,
        two_sided=two_sided,
    )

    return LiquidityMetrics(
        score=score,
        bid_depth=bid_depth,
        ask_depth=ask_depth,
        total_depth=total_depth,
        depth_within_1pct=depth_within_1pct,
        depth_within_5pct=depth_within_5pct,
        spread=spread,
        spread_percent=spread_percent,
        mid_price=mid_price,
    )
