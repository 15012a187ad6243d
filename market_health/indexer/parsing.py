"""
Conversion of raw indexer JSON payloads into typed models.

The indexer REST gateway returns nested JSON with decimal strings and
millisecond timestamps that are sometimes encoded as strings. Parsing is
lenient about optional fields and strict about shape: a payload that is not
the expected container raises ``FatalHttpError``.
"""

from __future__ import annotations

import time
from typing import Any

from market_health.indexer.errors import FatalHttpError
from market_health.models.market import Market, TokenMeta
from market_health.models.orderbook import OrderBookSnapshot, PriceLevel
from market_health.models.trade import Trade


def _parse_int(value: object, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _text(value: object, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _token_meta(payload: object) -> TokenMeta:
    if not isinstance(payload, dict):
        return TokenMeta(name="", symbol="", decimals=18)
    return TokenMeta(
        name=_text(payload.get("name")),
        symbol=_text(payload.get("symbol")),
        decimals=_parse_int(payload.get("decimals"), default=18),
    )


def parse_market(entry: dict[str, Any]) -> Market:
    market_id = entry.get("marketId")
    if not isinstance(market_id, str) or not market_id:
        raise FatalHttpError("market entry is missing marketId", payload=entry)
    return Market(
        market_id=market_id,
        ticker=_text(entry.get("ticker")),
        base_denom=_text(entry.get("baseDenom")),
        quote_denom=_text(entry.get("quoteDenom")),
        base_token=_token_meta(entry.get("baseTokenMeta")),
        quote_token=_token_meta(entry.get("quoteTokenMeta")),
        maker_fee_rate=_text(entry.get("makerFeeRate"), "0"),
        taker_fee_rate=_text(entry.get("takerFeeRate"), "0"),
        service_provider_fee=_text(entry.get("serviceProviderFee"), "0"),
        min_price_tick_size=_text(entry.get("minPriceTickSize"), "0"),
        min_quantity_tick_size=_text(entry.get("minQuantityTickSize"), "0"),
    )


def parse_markets(payload: Any) -> list[Market]:
    entries = payload.get("markets") if isinstance(payload, dict) else payload
    if not isinstance(entries, list) or not all(isinstance(item, dict) for item in entries):
        raise FatalHttpError("markets response must be a list of objects", payload=payload)
    return [parse_market(entry) for entry in entries]


def _parse_levels(levels: object) -> tuple[PriceLevel, ...]:
    if levels is None:
        return ()
    if not isinstance(levels, list):
        raise FatalHttpError("orderbook side must be a list", payload=levels)
    parsed: list[PriceLevel] = []
    for level in levels:
        if not isinstance(level, dict):
            raise FatalHttpError("orderbook level must be an object", payload=level)
        parsed.append(
            PriceLevel(
                price=_text(level.get("price"), "0"),
                quantity=_text(level.get("quantity"), "0"),
                timestamp=_parse_int(level.get("timestamp")),
            )
        )
    return tuple(parsed)


def parse_orderbook(payload: Any) -> OrderBookSnapshot:
    if not isinstance(payload, dict):
        raise FatalHttpError("orderbook response must be a dict", payload=payload)
    book = payload.get("orderbook", payload)
    if not isinstance(book, dict):
        raise FatalHttpError("orderbook response must contain an orderbook object", payload=payload)
    return OrderBookSnapshot(
        buys=_parse_levels(book.get("buys")),
        sells=_parse_levels(book.get("sells")),
        sequence=_parse_int(book.get("sequence")),
    )


def _flat_decimal(value: object) -> object:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return value


def parse_trade(entry: dict[str, Any], market_id: str, *, now_ms: int | None = None) -> Trade:
    # Spot trades nest price/quantity/timestamp under "price"; flat fields are also accepted.
    # A trade without a timestamp is stamped with the current time.
    nested = entry.get("price") if isinstance(entry.get("price"), dict) else {}
    price = entry.get("executionPrice") or nested.get("price") or _flat_decimal(entry.get("price")) or "0"
    quantity = entry.get("executionQuantity") or nested.get("quantity") or entry.get("quantity") or "0"
    executed_at = entry.get("executedAt") or nested.get("timestamp") or entry.get("timestamp")
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return Trade(
        trade_id=_text(entry.get("tradeId")),
        market_id=_text(entry.get("marketId"), market_id) or market_id,
        execution_price=_text(price, "0"),
        execution_quantity=_text(quantity, "0"),
        executed_at=_parse_int(executed_at, default=now_ms),
        trade_direction=_text(entry.get("tradeDirection") or entry.get("executionSide")),
        execution_side=_text(entry.get("executionSide")),
        execution_type=_text(entry.get("tradeExecutionType")),
        order_hash=_text(entry.get("orderHash")),
        subaccount_id=_text(entry.get("subaccountId")),
        fee=_text(entry.get("fee"), "0"),
    )


def parse_trades(payload: Any, market_id: str) -> list[Trade]:
    entries = payload.get("trades") if isinstance(payload, dict) else payload
    if entries is None:
        return []
    if not isinstance(entries, list) or not all(isinstance(item, dict) for item in entries):
        raise FatalHttpError("trades response must be a list of objects", payload=payload)
    now_ms = int(time.time() * 1000)
    return [parse_trade(entry, market_id, now_ms=now_ms) for entry in entries]
