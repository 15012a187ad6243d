"""
Request-layer operations over the scoring engine.

Every single-market operation follows the same flow: validate the
identifier, serve from the result cache when possible, resolve the market
against the (cached) market list, acquire order book and trades, run the
analyzers and cache the report under ``"<kind>:<marketId>"``.

Data acquisition prefers the live store when ``live.prefer_live`` is set
and the store already holds both an order book and trades for the market;
otherwise the data source is queried. Source failures surface as
``UpstreamFailureError``.

The comparison fans out one computation per market on a thread pool. A
failing market is recorded on its own entry and never affects its
siblings; the best market is the successful entry with the highest health
score (first one wins a tie).
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from typing import Any, Callable, Iterable, Sequence, TypeVar

from market_health import __version__
from market_health.analytics import (
    compute_health_score,
    compute_liquidity_metrics,
    compute_risk_metrics,
    compute_volatility_metrics,
    compute_volume_metrics,
)
from market_health.config import AppConfig
from market_health.errors import MarketHealthError, MarketNotFoundError, UpstreamFailureError
from market_health.indexer.client import IndexerMetrics
from market_health.indexer.errors import IndexerHttpError
from market_health.models.market import Market
from market_health.models.metrics import (
    ComparisonEntry,
    ComparisonResult,
    HealthScore,
    LiquidityMetrics,
    MarketReport,
    MetricKind,
    RiskMetrics,
    VolatilityMetrics,
    VolumeMetrics,
)
from market_health.models.orderbook import OrderBookSnapshot
from market_health.models.trade import Trade
from market_health.obs.logging import log_event
from market_health.obs.metrics import summarize_http_metrics
from market_health.source import MarketDataSource
from market_health.store.cache import ResultCache, make_cache_key, make_compare_key
from market_health.store.feed import PollingFeed
from market_health.store.live import LiveDataAggregator
from market_health.validation import parse_market_list, validate_market_id

T = TypeVar("T")

MARKETS_CACHE_KEY = "markets:all"
NO_VALID_MARKETS = "No valid markets to compare"


def _now_ms() -> int:
    return int(time.time() * 1000)


def format_uptime(seconds: float) -> str:
    total = int(seconds)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    parts: list[str] = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def select_best_market(entries: Iterable[ComparisonEntry]) -> ComparisonEntry | None:
    best: ComparisonEntry | None = None
    for entry in entries:
        if not entry.ok:
            continue
        if best is None or entry.health.score > best.health.score:
            best = entry
    return best


def comparison_recommendation(best: ComparisonEntry | None) -> str:
    if best is None:
        return NO_VALID_MARKETS
    return f"{best.ticker} has the best overall health score ({best.health.score})"


class MarketHealthService:
    def __init__(
        self,
        source: MarketDataSource,
        config: AppConfig | None = None,
        *,
        cache: ResultCache | None = None,
        live: LiveDataAggregator | None = None,
        feed: PollingFeed | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._source = source
        self._config = config or AppConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._cache = cache or ResultCache(self._config.cache.ttl_s, clock=clock, logger=self._logger)
        self._live = live
        self._feed = feed
        self._started = time.monotonic()

    @property
    def cache(self) -> ResultCache:
        return self._cache

    # Markets

    def list_markets(self) -> list[Market]:
        cached = self._cache.get(MARKETS_CACHE_KEY)
        if cached is not None:
            return list(cached)
        try:
            markets = self._source.fetch_markets()
        except IndexerHttpError as exc:
            raise UpstreamFailureError("fetch markets", None, exc) from exc
        self._cache.set(MARKETS_CACHE_KEY, tuple(markets), self._config.cache.markets_ttl_s)
        return list(markets)

    def get_market(self, market_id: str) -> Market:
        market_id = validate_market_id(market_id)
        key = make_cache_key("market", market_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        for market in self.list_markets():
            if market.matches(market_id):
                self._cache.set(key, market, self._config.cache.markets_ttl_s)
                return market
        log_event(
            self._logger,
            logging.INFO,
            "market_not_found",
            "Market identifier did not resolve",
            market_id=market_id,
        )
        raise MarketNotFoundError(market_id)

    # Data acquisition

    def _use_live(self, market_id: str) -> bool:
        return (
            self._live is not None
            and self._config.live.prefer_live
            and self._live.has_data(market_id)
        )

    def _orderbook(self, market: Market) -> OrderBookSnapshot:
        if self._use_live(market.market_id):
            snapshot = self._live.get_orderbook(market.market_id)
            if snapshot is not None:
                return snapshot
        try:
            return self._source.fetch_orderbook(market.market_id)
        except IndexerHttpError as exc:
            raise UpstreamFailureError("fetch orderbook", market.market_id, exc) from exc

    def _trades(self, market: Market, limit: int) -> list[Trade]:
        if self._use_live(market.market_id):
            return self._live.get_trades(market.market_id)[:limit]
        try:
            return self._source.fetch_trades(market.market_id, limit)
        except IndexerHttpError as exc:
            raise UpstreamFailureError("fetch trades", market.market_id, exc) from exc

    def _analyze(self, market: Market) -> tuple[LiquidityMetrics, VolatilityMetrics, VolumeMetrics]:
        snapshot = self._orderbook(market)
        trades = self._trades(market, self._config.analytics.trades_limit)
        now_ms = self._clock()
        liquidity = compute_liquidity_metrics(snapshot)
        volatility = compute_volatility_metrics(
            trades,
            window_minutes=self._config.analytics.volatility_window_minutes,
            now_ms=now_ms,
        )
        volume = compute_volume_metrics(trades, now_ms=now_ms)
        return liquidity, volatility, volume

    def _cached_report(
        self,
        kind: MetricKind,
        market_id: str,
        build: Callable[[Market], tuple[T, dict[str, Any] | None]],
    ) -> MarketReport[T]:
        market_id = validate_market_id(market_id)
        key = make_cache_key(kind, market_id)
        cached = self._cache.get(key)
        if cached is not None:
            log_event(self._logger, logging.DEBUG, "cache_hit", "Serving cached result", key=key)
            return cached
        log_event(self._logger, logging.DEBUG, "cache_miss", "Computing result", key=key)

        market = self.get_market(market_id)
        metrics, details = build(market)
        report = MarketReport(
            market_id=market.market_id,
            ticker=market.ticker,
            kind=kind,
            metrics=metrics,
            timestamp=self._clock(),
            details=details,
        )
        self._cache.set(key, report)
        return report

    # Single-market operations

    def liquidity(self, market_id: str) -> MarketReport[LiquidityMetrics]:
        def build(market: Market) -> tuple[LiquidityMetrics, None]:
            return compute_liquidity_metrics(self._orderbook(market)), None

        return self._cached_report("liquidity", market_id, build)

    def volatility(self, market_id: str) -> MarketReport[VolatilityMetrics]:
        def build(market: Market) -> tuple[VolatilityMetrics, None]:
            trades = self._trades(market, self._config.analytics.trades_limit)
            metrics = compute_volatility_metrics(
                trades,
                window_minutes=self._config.analytics.volatility_window_minutes,
                now_ms=self._clock(),
            )
            return metrics, None

        return self._cached_report("volatility", market_id, build)

    def volume(self, market_id: str) -> MarketReport[VolumeMetrics]:
        def build(market: Market) -> tuple[VolumeMetrics, None]:
            trades = self._trades(market, self._config.analytics.volume_trades_limit)
            return compute_volume_metrics(trades, now_ms=self._clock()), None

        return self._cached_report("volume", market_id, build)

    def health(self, market_id: str) -> MarketReport[HealthScore]:
        def build(market: Market) -> tuple[HealthScore, dict[str, Any]]:
            liquidity, volatility, volume = self._analyze(market)
            details = {
                "liquidity": {
                    "score": liquidity.score,
                    "spread_percent": liquidity.spread_percent,
                    "total_depth": liquidity.total_depth,
                },
                "volatility": {
                    "score": volatility.score,
                    "level": volatility.level,
                    "volatility_percent": volatility.volatility_percent,
                },
                "volume": {
                    "score": volume.score,
                    "volume_24h": volume.volume_24h,
                    "trade_count": volume.trade_count,
                },
            }
            return compute_health_score(liquidity, volatility, volume), details

        return self._cached_report("health", market_id, build)

    def risk(self, market_id: str) -> MarketReport[RiskMetrics]:
        def build(market: Market) -> tuple[RiskMetrics, None]:
            return compute_risk_metrics(*self._analyze(market)), None

        return self._cached_report("risk", market_id, build)

    # Comparison

    def _compare_entry(self, market_id: str) -> ComparisonEntry:
        try:
            market = self.get_market(market_id)
            liquidity, volatility, volume = self._analyze(market)
        except MarketHealthError as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "compare_market_failed",
                "Market comparison entry failed",
                market_id=market_id,
                error=str(exc),
            )
            error = "Market not found" if isinstance(exc, MarketNotFoundError) else str(exc)
            return ComparisonEntry(market_id=market_id, error=error)
        except Exception as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "compare_market_failed",
                "Unexpected failure in market comparison entry",
                exc_info=True,
                market_id=market_id,
                error=str(exc),
            )
            return ComparisonEntry(market_id=market_id, error=str(exc) or type(exc).__name__)
        return ComparisonEntry(
            market_id=market_id,
            ticker=market.ticker,
            health=compute_health_score(liquidity, volatility, volume),
            liquidity=liquidity,
            volatility=volatility,
            volume=volume,
        )

    def compare(self, market_ids: str | Sequence[str]) -> ComparisonResult:
        ids = parse_market_list(market_ids)
        key = make_compare_key(ids)
        cached = self._cache.get(key)
        if cached is not None:
            log_event(self._logger, logging.DEBUG, "cache_hit", "Serving cached result", key=key)
            return cached
        log_event(self._logger, logging.DEBUG, "cache_miss", "Computing result", key=key)

        max_workers = min(self._config.analytics.compare_max_workers, len(ids))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="compare") as executor:
            futures = [executor.submit(self._compare_entry, market_id) for market_id in ids]
            entries = tuple(future.result() for future in futures)

        best = select_best_market(entries)
        result = ComparisonResult(
            count=len(ids),
            entries=entries,
            best_market=best.market_id if best else None,
            recommendation=comparison_recommendation(best),
            timestamp=self._clock(),
        )
        self._cache.set(key, result)
        return result

    # Status

    def status(self) -> dict[str, Any]:
        uptime_s = time.monotonic() - self._started
        payload: dict[str, Any] = {
            "status": "operational",
            "version": __version__,
            "uptime": {"seconds": int(uptime_s), "formatted": format_uptime(uptime_s)},
            "cache": asdict(self._cache.stats()),
            "live": asdict(self._live.stats()) if self._live is not None else None,
            "feed": self._feed.stats() if self._feed is not None else None,
            "timestamp": self._clock(),
        }
        metrics = getattr(self._source, "metrics", None)
        payload["http"] = summarize_http_metrics(metrics) if isinstance(metrics, IndexerMetrics) else None
        return payload
