from market_health.analytics.health import compute_health_score
from market_health.analytics.risk import (
    WARN_EXTREME_SPREAD,
    WARN_EXTREME_VOLATILITY,
    WARN_HIGH_VOLATILITY,
    WARN_LOW_ACTIVITY,
    WARN_LOW_LIQUIDITY,
    WARN_SHALLOW_BOOK,
    WARN_VERY_LOW_LIQUIDITY,
    WARN_VOLUME_DROP,
    WARN_WIDE_SPREAD,
    compute_risk_metrics,
    risk_level,
    spread_risk,
)
from market_health.models.metrics import (
    LiquidityMetrics,
    VolatilityLevel,
    VolatilityMetrics,
    VolumeMetrics,
)


def liquidity(score: int, spread_percent: float = 0.05, depth_within_1pct: float = 5000.0) -> LiquidityMetrics:
    return LiquidityMetrics(
        score=score,
        bid_depth=5000.0,
        ask_depth=5000.0,
        total_depth=10000.0,
        depth_within_1pct=depth_within_1pct,
        depth_within_5pct=8000.0,
        spread=spread_percent / 100 * 20,
        spread_percent=spread_percent,
        mid_price=20.0,
    )


def volatility(score: int, level: VolatilityLevel = "LOW") -> VolatilityMetrics:
    return VolatilityMetrics(
        score=score,
        standard_deviation=0.0,
        volatility_percent=0.0,
        level=level,
        mean_price=20.0,
    )


def volume(score: int, trade_count: int = 50, change: float = 0.0) -> VolumeMetrics:
    return VolumeMetrics(
        score=score,
        volume_24h=100000.0,
        trade_count=trade_count,
        volume_change_percent=change,
        average_trade_size=2000.0,
    )


def test_spread_risk_tiers() -> None:
    assert spread_risk(0.05) == 10
    assert spread_risk(0.5) == 30
    assert spread_risk(0.9) == 50
    assert spread_risk(1.9) == 70
    assert spread_risk(2.5) == 90


def test_risk_level_boundaries() -> None:
    assert risk_level(24) == "LOW"
    assert risk_level(25) == "MEDIUM"
    assert risk_level(49) == "MEDIUM"
    assert risk_level(50) == "HIGH"
    assert risk_level(74) == "HIGH"
    assert risk_level(75) == "EXTREME"


def test_every_warning_fires_in_order() -> None:
    risk = compute_risk_metrics(
        liquidity(20, spread_percent=3.0, depth_within_1pct=100.0),
        volatility(0, level="EXTREME"),
        volume(10, trade_count=5, change=-60.0),
    )

    assert risk.warnings == (
        WARN_VERY_LOW_LIQUIDITY,
        WARN_EXTREME_SPREAD,
        WARN_EXTREME_VOLATILITY,
        WARN_LOW_ACTIVITY,
        WARN_VOLUME_DROP,
        WARN_SHALLOW_BOOK,
    )
    assert risk.level == "EXTREME"


def test_moderate_warnings() -> None:
    risk = compute_risk_metrics(
        liquidity(45, spread_percent=1.5),
        volatility(40, level="HIGH"),
        volume(60, trade_count=20),
    )

    assert risk.warnings == (WARN_LOW_LIQUIDITY, WARN_WIDE_SPREAD, WARN_HIGH_VOLATILITY)


def test_quiet_market_has_no_warnings() -> None:
    risk = compute_risk_metrics(liquidity(90), volatility(100), volume(80))

    assert risk.warnings == ()
    assert risk.level == "LOW"
    assert risk.factors.liquidity_risk == 10
    assert risk.factors.volatility_risk == 0
    assert risk.factors.volume_risk == 20
    assert risk.factors.spread_risk == 10


def test_risk_is_not_the_complement_of_health() -> None:
    liq, vol, volu = liquidity(60), volatility(100), volume(0)

    health = compute_health_score(liq, vol, volu)
    risk = compute_risk_metrics(liq, vol, volu)

    assert health.score == 61
    assert risk.score == 31
    assert risk.score != 100 - health.score
