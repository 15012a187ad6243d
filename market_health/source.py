from __future__ import annotations

from typing import Protocol

from market_health.models.market import Market
from market_health.models.orderbook import OrderBookSnapshot
from market_health.models.trade import Trade


class MarketDataSource(Protocol):
    """Blocking data-acquisition boundary; implemented by ``IndexerClient``."""

    def fetch_markets(self) -> list[Market]: ...

    def fetch_orderbook(self, market_id: str) -> OrderBookSnapshot: ...

    def fetch_trades(self, market_id: str, limit: int = 100) -> list[Trade]: ...
