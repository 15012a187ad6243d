"""
Value types produced by the market scoring engine.

Every metrics object is created fresh per computation and never mutated
afterwards, so instances can be cached and shared between threads freely.
Scores are integers in [0, 100]; for RiskMetrics a higher score is riskier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

VolatilityLevel = Literal["LOW", "MODERATE", "HIGH", "EXTREME"]
HealthStatus = Literal["HEALTHY", "WARNING", "CRITICAL"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "EXTREME"]
MetricKind = Literal["liquidity", "volatility", "volume", "health", "risk"]

T = TypeVar("T")


@dataclass(frozen=True)
class LiquidityMetrics:
    """
    Order book liquidity summary.

    Attributes:
        score: Liquidity score (0-100).
        bid_depth: Sum of quantities over all bid levels.
        ask_depth: Sum of quantities over all ask levels.
        total_depth: bid_depth + ask_depth.
        depth_within_1pct: Quantity resting within 1% of mid price.
        depth_within_5pct: Quantity resting within 5% of mid price.
        spread: Absolute best ask - best bid (0 for a one-sided book).
        spread_percent: spread / mid_price x 100 (0 when mid_price is 0).
        mid_price: (best bid + best ask) / 2, or 0 when either side is empty.
    """
    score: int
    bid_depth: float
    ask_depth: float
    total_depth: float
    depth_within_1pct: float
    depth_within_5pct: float
    spread: float
    spread_percent: float
    mid_price: float


@dataclass(frozen=True)
class VolatilityMetrics:
    """
    Price dispersion over a trailing window of trades.

    Attributes:
        score: Stability score (0-100, higher is calmer).
        standard_deviation: Population standard deviation of execution prices.
        volatility_percent: standard_deviation / mean_price x 100.
        level: LOW / MODERATE / HIGH / EXTREME classification.
        mean_price: Arithmetic mean of execution prices.
        price_changes: Percent deltas between consecutive trades, oldest first.
        trade_count: Number of trades inside the window.
    """
    score: int
    standard_deviation: float
    volatility_percent: float
    level: VolatilityLevel
    mean_price: float
    price_changes: tuple[float, ...] = ()
    trade_count: int = 0


@dataclass(frozen=True)
class VolumeMetrics:
    """
    Trailing 24-hour activity summary.

    Attributes:
        score: Activity score (0-100).
        volume_24h: Quote-currency notional traded (sum of price x quantity).
        trade_count: Number of trades inside the 24h window.
        volume_change_percent: Change against the previous period, 0 without a baseline.
        average_trade_size: volume_24h / trade_count.
    """
    score: int
    volume_24h: float
    trade_count: int
    volume_change_percent: float
    average_trade_size: float


@dataclass(frozen=True)
class HealthComponents:
    liquidity: int
    volatility: int
    volume: int
    spread: int


@dataclass(frozen=True)
class HealthScore:
    """
    Overall market health.

    Attributes:
        score: Weighted health score (0-100).
        status: HEALTHY / WARNING / CRITICAL tier.
        components: Sub-scores that fed the weighted sum.
        recommendation: Human-readable trading guidance.
    """
    score: int
    status: HealthStatus
    components: HealthComponents
    recommendation: str


@dataclass(frozen=True)
class RiskFactors:
    liquidity_risk: int
    volatility_risk: int
    spread_risk: int
    volume_risk: int


@dataclass(frozen=True)
class RiskMetrics:
    """
    Overall market risk.

    Attributes:
        score: Weighted risk score (0-100, higher is riskier).
        level: LOW / MEDIUM / HIGH / EXTREME tier.
        factors: Individual risk factors that fed the weighted sum.
        warnings: Rule-based warnings in emission order.
    """
    score: int
    level: RiskLevel
    factors: RiskFactors
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class MarketReport(Generic[T]):
    """
    Response envelope for a single-market operation.

    Attributes:
        market_id: Resolved market id.
        ticker: Market ticker.
        kind: Metric kind carried in ``metrics``.
        metrics: The computed metrics object.
        timestamp: Computation time in epoch milliseconds.
        details: Optional summary of the analyzer inputs behind ``metrics``.
    """
    market_id: str
    ticker: str
    kind: MetricKind
    metrics: T
    timestamp: int
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ComparisonEntry:
    market_id: str
    ticker: str | None = None
    health: HealthScore | None = None
    liquidity: LiquidityMetrics | None = None
    volatility: VolatilityMetrics | None = None
    volume: VolumeMetrics | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.health is not None


@dataclass(frozen=True)
class ComparisonResult:
    count: int
    entries: tuple[ComparisonEntry, ...]
    best_market: str | None
    recommendation: str
    timestamp: int
