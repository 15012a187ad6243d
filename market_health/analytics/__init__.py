from market_health.analytics.health import compute_health_score
from market_health.analytics.liquidity import compute_liquidity_metrics
from market_health.analytics.risk import compute_risk_metrics
from market_health.analytics.volatility import compute_volatility_metrics
from market_health.analytics.volume import compute_volume_metrics

__all__ = [
    "compute_liquidity_metrics",
    "compute_volatility_metrics",
    "compute_volume_metrics",
    "compute_health_score",
    "compute_risk_metrics",
]
