"""
Overall market health aggregation.

Combines the liquidity, volatility and volume analyzer outputs with a
spread sub-score into one weighted health score, a status tier and a
recommendation.

Spread score (from spread_percent):
    <= 0.1 → 100, <= 0.5 → 80, <= 1.0 → 60, <= 2.0 → 40, <= 5.0 → 20, else 10

Weights:
    liquidity 35%, volatility 25%, volume 25%, spread 15%

Status:
    score >= 70 → HEALTHY, >= 40 → WARNING, else CRITICAL
"""

from __future__ import annotations

from market_health.analytics.numeric import clamp_score, tier_lookup
from market_health.models.metrics import (
    HealthComponents,
    HealthScore,
    HealthStatus,
    LiquidityMetrics,
    VolatilityLevel,
    VolatilityMetrics,
    VolumeMetrics,
)

HEALTH_WEIGHTS = {
    "liquidity": 0.35,
    "volatility": 0.25,
    "volume": 0.25,
    "spread": 0.15,
}

WEAK_COMPONENT_THRESHOLD = 50

_WEAK_COMPONENT_LABELS = (
    ("liquidity", "low liquidity"),
    ("volatility", "high volatility"),
    ("volume", "low volume"),
    ("spread", "wide spread"),
)

_SPREAD_SCORE_TIERS = (
    (0.1, 100),
    (0.5, 80),
    (1.0, 60),
    (2.0, 40),
    (5.0, 20),
)


def spread_score(spread_percent: float) -> int:
    return tier_lookup(spread_percent, _SPREAD_SCORE_TIERS, default=10)


def weighted_health_score(components: HealthComponents) -> int:
    total = (
        components.liquidity * HEALTH_WEIGHTS["liquidity"]
        + components.volatility * HEALTH_WEIGHTS["volatility"]
        + components.volume * HEALTH_WEIGHTS["volume"]
        + components.spread * HEALTH_WEIGHTS["spread"]
    )
    return clamp_score(total)


def health_status(score: int) -> HealthStatus:
    if score >= 70:
        return "HEALTHY"
    if score >= 40:
        return "WARNING"
    return "CRITICAL"


def weak_components(components: HealthComponents) -> list[str]:
    return [
        label
        for name, label in _WEAK_COMPONENT_LABELS
        if getattr(components, name) < WEAK_COMPONENT_THRESHOLD
    ]


def build_recommendation(
    status: HealthStatus,
    components: HealthComponents,
    volatility_level: VolatilityLevel,
) -> str:
    issues = weak_components(components)

    if status == "HEALTHY":
        text = "Market is healthy and suitable for trading. Normal trading conditions apply."
    elif status == "WARNING":
        issue_list = f" ({', '.join(issues)})" if issues else ""
        text = f"Exercise caution{issue_list}. Consider using limit orders and smaller position sizes."
    else:
        issue_list = f" Issues: {', '.join(issues)}." if issues else ""
        text = (
            f"High risk market conditions.{issue_list} Avoid trading or use extreme caution "
            "with small positions and tight stop losses."
        )

    if volatility_level == "EXTREME":
        text += " Volatility is extreme: use limit orders and monitor closely."
    return text


def compute_health_score(
    liquidity: LiquidityMetrics,
    volatility: VolatilityMetrics,
    volume: VolumeMetrics,
) -> HealthScore:
    components = HealthComponents(
        liquidity=liquidity.score,
        volatility=volatility.score,
        volume=volume.score,
        spread=spread_score(liquidity.spread_percent),
    )
    score = weighted_health_score(components)
    status = health_status(score)
    return HealthScore(
        score=score,
        status=status,
        components=components,
        recommendation=build_recommendation(status, components, volatility.level),
    )
