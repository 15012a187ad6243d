"""
Polling push feed for the live data store.

Polls the data source for every watched market at a fixed interval and
pushes what changed into a ``LiveDataAggregator``: each fetched order book
is offered to the store (stale sequences are rejected there) and trades not
seen in the previous poll are added oldest first, so the newest trade ends
up at the head of the bounded history.

A failed fetch for one market is logged and counted; it never stops the
loop or the polling of other markets.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

from market_health.indexer.errors import IndexerHttpError
from market_health.models.trade import Trade
from market_health.obs.logging import log_event
from market_health.source import MarketDataSource
from market_health.store.live import LiveDataAggregator


def _trade_key(trade: Trade) -> str:
    if trade.trade_id:
        return trade.trade_id
    return f"{trade.order_hash}:{trade.executed_at}:{trade.execution_price}:{trade.execution_quantity}"


@dataclass(frozen=True)
class PollResult:
    market_id: str
    orderbook_accepted: bool
    new_trades: int
    error: str | None = None


class PollingFeed:
    def __init__(
        self,
        source: MarketDataSource,
        store: LiveDataAggregator,
        *,
        interval_s: float = 2.0,
        trades_limit: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._source = source
        self._store = store
        self._interval_s = interval_s
        self._trades_limit = trades_limit or store.max_trades_per_market
        self._logger = logger or logging.getLogger(__name__)
        self._markets: dict[str, set[str]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._polls_total = 0
        self._poll_failures = 0

    def watch(self, market_id: str) -> None:
        with self._lock:
            self._markets.setdefault(market_id, set())

    def unwatch(self, market_id: str) -> None:
        with self._lock:
            self._markets.pop(market_id, None)

    def watched(self) -> list[str]:
        with self._lock:
            return sorted(self._markets)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stats(self) -> dict[str, int | bool]:
        with self._lock:
            return {
                "running": self.running,
                "watched_markets": len(self._markets),
                "polls_total": self._polls_total,
                "poll_failures": self._poll_failures,
            }

    def poll_market(self, market_id: str) -> PollResult:
        try:
            snapshot = self._source.fetch_orderbook(market_id)
            trades = self._source.fetch_trades(market_id, self._trades_limit)
        except IndexerHttpError as exc:
            with self._lock:
                self._polls_total += 1
                self._poll_failures += 1
            log_event(
                self._logger,
                logging.WARNING,
                "feed_poll_failed",
                "Live feed poll failed",
                market_id=market_id,
                error=str(exc),
            )
            return PollResult(market_id=market_id, orderbook_accepted=False, new_trades=0, error=str(exc))

        accepted = self._store.update_orderbook(market_id, snapshot)

        with self._lock:
            self._polls_total += 1
            previous_keys = self._markets.get(market_id)
            if previous_keys is None:
                # Unwatched while the fetch was in flight
                return PollResult(market_id=market_id, orderbook_accepted=accepted, new_trades=0)
            fresh = [trade for trade in trades if _trade_key(trade) not in previous_keys]
            self._markets[market_id] = {_trade_key(trade) for trade in trades}

        # Fetched trades are most recent first; insert oldest first.
        self._store.add_trades(market_id, list(reversed(fresh)))
        return PollResult(market_id=market_id, orderbook_accepted=accepted, new_trades=len(fresh))

    def poll_once(self) -> list[PollResult]:
        return [self.poll_market(market_id) for market_id in self.watched()]

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="live-polling-feed", daemon=True)
        self._thread.start()
        log_event(
            self._logger,
            logging.INFO,
            "feed_started",
            "Live polling feed started",
            markets=self.watched(),
            interval_s=self._interval_s,
        )

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
            log_event(self._logger, logging.INFO, "feed_stopped", "Live polling feed stopped")

    def _run(self) -> None:
        start = time.monotonic()
        tick_idx = 0
        while not self._stop.is_set():
            self.poll_once()
            tick_idx += 1
            next_deadline = start + tick_idx * self._interval_s
            sleep_s = next_deadline - time.monotonic()
            if sleep_s > 0 and self._stop.wait(sleep_s):
                break
