import httpx
import pytest

from market_health.config import IndexerConfig
from market_health.indexer.client import (
    MARKETS_ENDPOINT,
    ORDERBOOK_ENDPOINT,
    TRADES_ENDPOINT,
    IndexerClient,
)
from market_health.indexer.errors import FatalHttpError, RateLimitedError, TransientHttpError
from market_health.indexer.parsing import parse_trade
from market_health.indexer.ratelimit import TokenBucket

MARKET_ID = "0x" + "c" * 64

MARKETS_PAYLOAD = {
    "markets": [
        {
            "marketId": MARKET_ID,
            "marketStatus": "active",
            "ticker": "INJ/USDT",
            "baseDenom": "inj",
            "baseTokenMeta": {"name": "Injective", "symbol": "INJ", "decimals": 18},
            "quoteDenom": "peggy0xdAC17F958D2ee523a2206206994597C13D831ec7",
            "quoteTokenMeta": {"name": "Tether", "symbol": "USDT", "decimals": 6},
            "makerFeeRate": "-0.0001",
            "takerFeeRate": "0.001",
            "serviceProviderFee": "0.4",
            "minPriceTickSize": "0.000000000000001",
            "minQuantityTickSize": "1000000000000000",
        }
    ]
}

ORDERBOOK_PAYLOAD = {
    "orderbook": {
        "buys": [{"price": "19.95", "quantity": "100", "timestamp": 1700000000000}],
        "sells": [{"price": "20.05", "quantity": "80", "timestamp": "1700000000500"}],
        "sequence": "4211",
    }
}

TRADES_PAYLOAD = {
    "trades": [
        {
            "orderHash": "0xhash",
            "subaccountId": "0xsub",
            "marketId": MARKET_ID,
            "tradeExecutionType": "limitMatchRestingOrder",
            "tradeDirection": "buy",
            "price": {"price": "20.01", "quantity": "3.5", "timestamp": 1700000000123},
            "fee": "0.07",
            "executedAt": 1700000000123,
            "tradeId": "32_0",
            "executionSide": "maker",
        }
    ]
}


def build_client(transport: httpx.BaseTransport, *, max_retries: int = 3) -> IndexerClient:
    config = IndexerConfig(
        base_url="https://indexer.example.test",
        timeout_s=1,
        max_retries=max_retries,
        backoff_base_s=0,
        backoff_max_s=0,
        max_rps=1000,
    )
    return IndexerClient(config, transport=transport, rate_limiter=TokenBucket(rate_per_sec=1000))


def test_fetch_markets_parses_descriptors() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=MARKETS_PAYLOAD)

    client = build_client(httpx.MockTransport(handler))

    markets = client.fetch_markets()

    assert seen[0].url.path == MARKETS_ENDPOINT
    assert seen[0].url.params["marketStatus"] == "active"
    assert len(markets) == 1
    market = markets[0]
    assert market.market_id == MARKET_ID
    assert market.ticker == "INJ/USDT"
    assert market.quote_token.decimals == 6
    assert market.taker_fee_rate == "0.001"
    assert market.matches("INJ-USDT")


def test_fetch_orderbook_parses_levels_and_sequence() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/api/exchange/spot/v2/orderbook/{MARKET_ID}"
        return httpx.Response(200, json=ORDERBOOK_PAYLOAD)

    client = build_client(httpx.MockTransport(handler))

    snapshot = client.fetch_orderbook(MARKET_ID)

    assert snapshot.sequence == 4211
    assert snapshot.buys[0].price == "19.95"
    assert snapshot.sells[0].quantity == "80"
    assert snapshot.sells[0].timestamp == 1700000000500
    assert client.metrics.http_requests_total[(ORDERBOOK_ENDPOINT, "200")] == 1


def test_fetch_trades_parses_nested_price() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["marketId"] == MARKET_ID
        assert request.url.params["limit"] == "500"
        return httpx.Response(200, json=TRADES_PAYLOAD)

    client = build_client(httpx.MockTransport(handler))

    trades = client.fetch_trades(MARKET_ID, limit=500)

    assert len(trades) == 1
    trade = trades[0]
    assert trade.trade_id == "32_0"
    assert trade.execution_price == "20.01"
    assert trade.execution_quantity == "3.5"
    assert trade.executed_at == 1700000000123
    assert trade.execution_side == "maker"
    assert trade.trade_direction == "buy"


def test_rate_limit_retries_then_success() -> None:
    responses = [
        httpx.Response(429, json={"message": "rate limit"}),
        httpx.Response(429, json={"message": "rate limit"}),
        httpx.Response(200, json=MARKETS_PAYLOAD),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    client = build_client(httpx.MockTransport(handler))

    markets = client.fetch_markets()

    assert len(markets) == 1
    assert client.metrics.http_retries_total[(MARKETS_ENDPOINT, "rate_limited")] == 2
    assert sum(
        count
        for (endpoint, _status), count in client.metrics.http_requests_total.items()
        if endpoint == MARKETS_ENDPOINT
    ) == 3


def test_rate_limit_exhausted() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"message": "rate limit"})

    client = build_client(httpx.MockTransport(handler), max_retries=1)

    with pytest.raises(RateLimitedError):
        client.fetch_markets()


def test_server_error_exhausts_retries() -> None:
    call_count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal call_count
        call_count += 1
        return httpx.Response(503, text="unavailable")

    client = build_client(httpx.MockTransport(handler), max_retries=2)

    with pytest.raises(TransientHttpError) as excinfo:
        client.fetch_orderbook(MARKET_ID)

    assert call_count == 3
    assert excinfo.value.status_code == 503
    assert client.metrics.http_retries_total[(ORDERBOOK_ENDPOINT, "server_error")] == 2


def test_fatal_error_no_retry() -> None:
    call_count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal call_count
        call_count += 1
        return httpx.Response(400, json={"message": "bad request"})

    client = build_client(httpx.MockTransport(handler))

    with pytest.raises(FatalHttpError):
        client.fetch_trades(MARKET_ID)

    assert call_count == 1


def test_timeout_retries_then_fails() -> None:
    call_count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal call_count
        call_count += 1
        raise httpx.ReadTimeout("timeout", request=request)

    client = build_client(httpx.MockTransport(handler), max_retries=1)

    with pytest.raises(TransientHttpError):
        client.fetch_markets()

    assert call_count == 2
    assert client.metrics.http_retries_total[(MARKETS_ENDPOINT, "timeout")] == 1


def test_invalid_json_is_retried() -> None:
    responses = [
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json=TRADES_PAYLOAD),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    client = build_client(httpx.MockTransport(handler))

    trades = client.fetch_trades(MARKET_ID)

    assert len(trades) == 1
    assert client.metrics.http_retries_total[(TRADES_ENDPOINT, "invalid_json")] == 1


def test_unexpected_payload_shape_is_fatal() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"markets": "nope"})

    client = build_client(httpx.MockTransport(handler))

    with pytest.raises(FatalHttpError):
        client.fetch_markets()


def test_undecodable_body_is_wrapped_as_transient_error() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(200, content=b'{"orderbook": "\xff\xfe"}')

    client = build_client(httpx.MockTransport(handler))

    with pytest.raises(TransientHttpError) as exc_info:
        client.fetch_orderbook(MARKET_ID)

    assert exc_info.value.status_code == 200
    assert calls["count"] == 3
    assert client.metrics.http_retries_total[(ORDERBOOK_ENDPOINT, "invalid_json")] == 2


def test_parse_trade_accepts_flat_fields() -> None:
    trade = parse_trade({"price": "20.5", "quantity": "3", "timestamp": 1700000000000}, MARKET_ID)

    assert trade.execution_price == "20.5"
    assert trade.execution_quantity == "3"
    assert trade.executed_at == 1700000000000
    assert trade.market_id == MARKET_ID


def test_parse_trade_without_timestamp_uses_current_time() -> None:
    trade = parse_trade({"tradeId": "1_0", "executionPrice": "20", "executionQuantity": "1"}, MARKET_ID, now_ms=42)

    assert trade.executed_at == 42
    assert trade.execution_price == "20"
