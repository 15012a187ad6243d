"""
Market risk aggregation.

Risk is computed independently from health over the same three analyzer
outputs. It uses its own weights and its own spread buckets, so the risk
score is not ``100 - health score`` in general.

Factors (0-100, higher is riskier):
    liquidity_risk  = 100 - liquidity score
    volatility_risk = 100 - volatility score
    volume_risk     = 100 - volume score
    spread_risk     = <= 0.1% → 10, <= 0.5% → 30, <= 1.0% → 50, <= 2.0% → 70, else 90

Weights:
    liquidity 35%, volatility 30%, spread 20%, volume 15%

Level:
    score < 25 → LOW, < 50 → MEDIUM, < 75 → HIGH, else EXTREME

Warnings are emitted rule by rule in a fixed order; several may co-occur.
"""

from __future__ import annotations

from market_health.analytics.numeric import clamp_score, tier_lookup
from market_health.models.metrics import (
    LiquidityMetrics,
    RiskFactors,
    RiskLevel,
    RiskMetrics,
    VolatilityMetrics,
    VolumeMetrics,
)

RISK_WEIGHTS = {
    "liquidity": 0.35,
    "volatility": 0.30,
    "spread": 0.20,
    "volume": 0.15,
}

_SPREAD_RISK_TIERS = (
    (0.1, 10),
    (0.5, 30),
    (1.0, 50),
    (2.0, 70),
)

MIN_TRADE_COUNT = 10
VOLUME_DROP_PERCENT = -50.0
MIN_DEPTH_WITHIN_1PCT = 1000.0

WARN_VERY_LOW_LIQUIDITY = "Very low liquidity - high slippage risk"
WARN_LOW_LIQUIDITY = "Low liquidity - moderate slippage risk"
WARN_EXTREME_SPREAD = "Extremely wide spread - poor pricing"
WARN_WIDE_SPREAD = "Wide spread - high transaction costs"
WARN_EXTREME_VOLATILITY = "Extreme price volatility detected"
WARN_HIGH_VOLATILITY = "High price volatility"
WARN_LOW_ACTIVITY = "Very low trading activity"
WARN_VOLUME_DROP = "Significant volume decrease"
WARN_SHALLOW_BOOK = "Shallow orderbook depth"


def spread_risk(spread_percent: float) -> int:
    return tier_lookup(spread_percent, _SPREAD_RISK_TIERS, default=90)


def weighted_risk_score(factors: RiskFactors) -> int:
    total = (
        factors.liquidity_risk * RISK_WEIGHTS["liquidity"]
        + factors.volatility_risk * RISK_WEIGHTS["volatility"]
        + factors.spread_risk * RISK_WEIGHTS["spread"]
        + factors.volume_risk * RISK_WEIGHTS["volume"]
    )
    return clamp_score(total)


def risk_level(score: int) -> RiskLevel:
    if score < 25:
        return "LOW"
    if score < 50:
        return "MEDIUM"
    if score < 75:
        return "HIGH"
    return "EXTREME"


def build_warnings(
    factors: RiskFactors,
    liquidity: LiquidityMetrics,
    volatility: VolatilityMetrics,
    volume: VolumeMetrics,
) -> tuple[str, ...]:
    warnings: list[str] = []

    if factors.liquidity_risk > 70:
        warnings.append(WARN_VERY_LOW_LIQUIDITY)
    elif factors.liquidity_risk > 50:
        warnings.append(WARN_LOW_LIQUIDITY)

    if liquidity.spread_percent > 2.0:
        warnings.append(WARN_EXTREME_SPREAD)
    elif liquidity.spread_percent > 1.0:
        warnings.append(WARN_WIDE_SPREAD)

    if volatility.level == "EXTREME":
        warnings.append(WARN_EXTREME_VOLATILITY)
    elif volatility.level == "HIGH":
        warnings.append(WARN_HIGH_VOLATILITY)

    if volume.trade_count < MIN_TRADE_COUNT:
        warnings.append(WARN_LOW_ACTIVITY)

    if volume.volume_change_percent < VOLUME_DROP_PERCENT:
        warnings.append(WARN_VOLUME_DROP)

    if liquidity.depth_within_1pct < MIN_DEPTH_WITHIN_1PCT:
        warnings.append(WARN_SHALLOW_BOOK)

    return tuple(warnings)


def compute_risk_metrics(
    liquidity: LiquidityMetrics,
    volatility: VolatilityMetrics,
    volume: VolumeMetrics,
) -> RiskMetrics:
    factors = RiskFactors(
        liquidity_risk=100 - liquidity.score,
        volatility_risk=100 - volatility.score,
        spread_risk=spread_risk(liquidity.spread_percent),
        volume_risk=100 - volume.score,
    )
    score = weighted_risk_score(factors)
    return RiskMetrics(
        score=score,
        level=risk_level(score),
        factors=factors,
        warnings=build_warnings(factors, liquidity, volatility, volume),
    )
