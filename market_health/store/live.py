"""
Live market data store fed by a push-style source.

Per market the store keeps the latest order book snapshot and a bounded
history of the most recent trades (most recent first). Readers get
immutable snapshots; writers update one market atomically under that
market's shard lock, so unrelated markets never contend.

Ordering Rules:
    - An order book whose sequence is <= the stored sequence is stale and
      discarded (last-sequence-wins).
    - Trades are prepended in arrival order and the history is truncated
      from the tail; trades are not re-sorted by timestamp.

Publish/Subscribe:
    Every accepted update is published on the channel of its
    (market, kind) pair. A handler that raises is logged and skipped;
    delivery to the remaining handlers continues.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections import deque
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Callable, Literal, Union

from market_health.models.orderbook import OrderBookSnapshot
from market_health.models.trade import Trade
from market_health.obs.logging import log_event

DataKind = Literal["orderbook", "trades"]
DATA_KINDS: tuple[DataKind, ...] = ("orderbook", "trades")

DEFAULT_MAX_TRADES = 100
DEFAULT_SHARDS = 16


@dataclass(frozen=True)
class StreamUpdate:
    """
    Notification delivered to subscribers.

    Attributes:
        kind: "orderbook" or "trades".
        market_id: Market the update belongs to.
        data: The accepted snapshot, or the newly added trades.
        timestamp: Publication time in epoch milliseconds.
    """
    kind: DataKind
    market_id: str
    data: Union[OrderBookSnapshot, tuple[Trade, ...]]
    timestamp: int


UpdateHandler = Callable[[StreamUpdate], None]


@dataclass(frozen=True)
class Subscription:
    market_id: str
    kind: DataKind
    handler: UpdateHandler
    token: int


@dataclass
class _MarketState:
    orderbook: OrderBookSnapshot | None
    trades: deque[Trade]


@dataclass(frozen=True)
class LiveStoreStats:
    active_markets: int
    channels: int
    subscribers: int
    orderbooks: int
    trades: int
    stale_orderbooks_rejected: int = 0
    subscriber_failures: int = 0
    markets: tuple[str, ...] = field(default_factory=tuple)


class LiveDataAggregator:
    def __init__(
        self,
        max_trades_per_market: int = DEFAULT_MAX_TRADES,
        *,
        shards: int = DEFAULT_SHARDS,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_trades_per_market <= 0:
            raise ValueError("max_trades_per_market must be positive")
        if shards <= 0:
            raise ValueError("shards must be positive")
        self._max_trades = max_trades_per_market
        self._logger = logger or logging.getLogger(__name__)
        self._shards = [threading.Lock() for _ in range(shards)]
        self._table: dict[str, _MarketState] = {}
        self._table_lock = threading.Lock()
        self._channels: dict[tuple[str, DataKind], list[Subscription]] = {}
        self._channels_lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._stale_rejected = 0
        self._subscriber_failures = 0
        self._counters_lock = threading.Lock()

    @property
    def max_trades_per_market(self) -> int:
        return self._max_trades

    def _shard(self, market_id: str) -> threading.Lock:
        return self._shards[hash(market_id) % len(self._shards)]

    def _state(self, market_id: str) -> _MarketState:
        with self._table_lock:
            state = self._table.get(market_id)
            if state is None:
                state = _MarketState(orderbook=None, trades=deque(maxlen=self._max_trades))
                self._table[market_id] = state
            return state

    def update_orderbook(self, market_id: str, snapshot: OrderBookSnapshot) -> bool:
        """Store ``snapshot`` unless it is stale; returns True when accepted."""
        with self._shard(market_id):
            state = self._state(market_id)
            current = state.orderbook
            if current is not None and snapshot.sequence <= current.sequence:
                stored_sequence = current.sequence
                accepted = False
            else:
                state.orderbook = snapshot
                accepted = True

        if not accepted:
            with self._counters_lock:
                self._stale_rejected += 1
            log_event(
                self._logger,
                logging.DEBUG,
                "orderbook_stale",
                "Discarded stale order book snapshot",
                market_id=market_id,
                sequence=snapshot.sequence,
                stored_sequence=stored_sequence,
            )
            return False

        self._publish(StreamUpdate("orderbook", market_id, snapshot, _now_ms()))
        return True

    def add_trade(self, market_id: str, trade: Trade) -> None:
        self.add_trades(market_id, [trade])

    def add_trades(self, market_id: str, trades: list[Trade]) -> None:
        """Prepend ``trades`` in the given order; the last one ends up most recent."""
        if not trades:
            return
        with self._shard(market_id):
            state = self._state(market_id)
            for trade in trades:
                state.trades.appendleft(trade)
        self._publish(StreamUpdate("trades", market_id, tuple(trades), _now_ms()))

    def get_orderbook(self, market_id: str) -> OrderBookSnapshot | None:
        with self._table_lock:
            state = self._table.get(market_id)
        if state is None:
            return None
        with self._shard(market_id):
            return state.orderbook

    def get_trades(self, market_id: str) -> list[Trade]:
        with self._table_lock:
            state = self._table.get(market_id)
        if state is None:
            return []
        with self._shard(market_id):
            return list(state.trades)

    def has_data(self, market_id: str) -> bool:
        return self.get_orderbook(market_id) is not None and bool(self.get_trades(market_id))

    def active_markets(self) -> list[str]:
        with self._table_lock:
            return sorted(self._table)

    def clear(self, market_id: str | None = None) -> None:
        # Shard locks are always taken before the table lock.
        if market_id is not None:
            with self._shard(market_id), self._table_lock:
                self._table.pop(market_id, None)
            return
        with ExitStack() as stack:
            for lock in self._shards:
                stack.enter_context(lock)
            with self._table_lock:
                self._table.clear()

    def subscribe(self, market_id: str, kind: DataKind, handler: UpdateHandler) -> Subscription:
        if kind not in DATA_KINDS:
            raise ValueError(f"Unknown data kind: {kind}")
        subscription = Subscription(market_id=market_id, kind=kind, handler=handler, token=next(self._tokens))
        with self._channels_lock:
            self._channels.setdefault((market_id, kind), []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        channel_key = (subscription.market_id, subscription.kind)
        with self._channels_lock:
            subscribers = self._channels.get(channel_key)
            if not subscribers or subscription not in subscribers:
                return False
            subscribers.remove(subscription)
            if not subscribers:
                del self._channels[channel_key]
            return True

    def _publish(self, update: StreamUpdate) -> None:
        with self._channels_lock:
            subscribers = list(self._channels.get((update.market_id, update.kind), ()))
        for subscription in subscribers:
            try:
                subscription.handler(update)
            except Exception:
                with self._counters_lock:
                    self._subscriber_failures += 1
                log_event(
                    self._logger,
                    logging.ERROR,
                    "subscriber_failed",
                    "Stream subscriber raised; continuing delivery",
                    exc_info=True,
                    market_id=update.market_id,
                    kind=update.kind,
                    token=subscription.token,
                )

    def stats(self) -> LiveStoreStats:
        with self._table_lock:
            states = dict(self._table)
        orderbooks = 0
        trades = 0
        for market_id, state in states.items():
            with self._shard(market_id):
                orderbooks += 1 if state.orderbook is not None else 0
                trades += len(state.trades)
        with self._channels_lock:
            channels = len(self._channels)
            subscribers = sum(len(items) for items in self._channels.values())
        with self._counters_lock:
            stale_rejected = self._stale_rejected
            subscriber_failures = self._subscriber_failures
        return LiveStoreStats(
            active_markets=len(states),
            channels=channels,
            subscribers=subscribers,
            orderbooks=orderbooks,
            trades=trades,
            stale_orderbooks_rejected=stale_rejected,
            subscriber_failures=subscriber_failures,
            markets=tuple(sorted(states)),
        )


def _now_ms() -> int:
    return int(time.time() * 1000)
