from market_health.analytics.health import (
    build_recommendation,
    compute_health_score,
    health_status,
    spread_score,
    weighted_health_score,
)
from market_health.analytics.liquidity import compute_liquidity_metrics
from market_health.analytics.risk import compute_risk_metrics
from market_health.models.metrics import (
    HealthComponents,
    LiquidityMetrics,
    VolatilityLevel,
    VolatilityMetrics,
    VolumeMetrics,
)
from market_health.models.orderbook import OrderBookSnapshot, PriceLevel


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


def test_spread_score_tiers() -> None:
    assert spread_score(0.0) == 100
    assert spread_score(0.1) == 100
    assert spread_score(0.3) == 80
    assert spread_score(0.75) == 60
    assert spread_score(1.5) == 40
    assert spread_score(4.0) == 20
    assert spread_score(12.0) == 10


def test_tight_book_spread_scores() -> None:
    book = OrderBookSnapshot(
        buys=(PriceLevel(price="19.95", quantity="100"),),
        sells=(PriceLevel(price="20.05", quantity="100"),),
        sequence=1,
    )
    liq = compute_liquidity_metrics(book)

    health = compute_health_score(liq, volatility(100), volume(50))
    risk = compute_risk_metrics(liq, volatility(100), volume(50))

    assert health.components.spread == 80
    assert risk.factors.spread_risk == 30


def test_healthy_market() -> None:
    health = compute_health_score(liquidity(80), volatility(100), volume(60))

    assert health.components == HealthComponents(liquidity=80, volatility=100, volume=60, spread=100)
    assert health.score == 83
    assert health.status == "HEALTHY"
    assert health.recommendation.startswith("Market is healthy and suitable for trading.")


def test_warning_lists_weak_components() -> None:
    health = compute_health_score(liquidity(40, spread_percent=0.3), volatility(90), volume(30))

    assert health.score == 56
    assert health.status == "WARNING"
    assert health.recommendation == (
        "Exercise caution (low liquidity, low volume). "
        "Consider using limit orders and smaller position sizes."
    )


def test_critical_with_extreme_volatility() -> None:
    health = compute_health_score(
        liquidity(10, spread_percent=6.0),
        volatility(20, level="EXTREME"),
        volume(10),
    )

    assert health.status == "CRITICAL"
    assert "Issues: low liquidity, high volatility, low volume, wide spread." in health.recommendation
    assert health.recommendation.endswith("Volatility is extreme: use limit orders and monitor closely.")


def test_extreme_volatility_caveat_applies_to_healthy_status() -> None:
    components = HealthComponents(liquidity=90, volatility=60, volume=90, spread=100)

    text = build_recommendation("HEALTHY", components, "EXTREME")

    assert text.startswith("Market is healthy")
    assert "Volatility is extreme" in text


def test_status_boundaries() -> None:
    assert health_status(70) == "HEALTHY"
    assert health_status(69) == "WARNING"
    assert health_status(40) == "WARNING"
    assert health_status(39) == "CRITICAL"


def test_health_is_monotone_in_each_component() -> None:
    base = compute_health_score(liquidity(50), volatility(50), volume(50))

    assert compute_health_score(liquidity(60), volatility(50), volume(50)).score >= base.score
    assert compute_health_score(liquidity(50), volatility(60), volume(50)).score >= base.score
    assert compute_health_score(liquidity(50), volatility(50), volume(60)).score >= base.score


def test_weighted_score_is_monotone_in_spread() -> None:
    scores = [
        weighted_health_score(HealthComponents(liquidity=50, volatility=50, volume=50, spread=spread))
        for spread in (0, 20, 40, 60, 80, 100)
    ]

    assert scores == sorted(scores)
    assert scores[-1] > scores[0]


def test_tighter_spread_never_lowers_health() -> None:
    wide = compute_health_score(liquidity(50, spread_percent=3.0), volatility(50), volume(50))
    tight = compute_health_score(liquidity(50, spread_percent=0.05), volatility(50), volume(50))

    assert wide.components.spread < tight.components.spread
    assert tight.score >= wide.score
