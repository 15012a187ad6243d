from __future__ import annotations

import logging
import random
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import httpx

from market_health.config import IndexerConfig
from market_health.indexer.errors import FatalHttpError, RateLimitedError, TransientHttpError
from market_health.indexer.parsing import parse_markets, parse_orderbook, parse_trades
from market_health.indexer.ratelimit import TokenBucket
from market_health.models.market import Market
from market_health.models.orderbook import OrderBookSnapshot
from market_health.models.trade import Trade
from market_health.obs.logging import log_event

MARKETS_ENDPOINT = "/api/exchange/spot/v1/markets"
ORDERBOOK_ENDPOINT = "/api/exchange/spot/v2/orderbook/{market_id}"
TRADES_ENDPOINT = "/api/exchange/spot/v1/trades"


@dataclass
class IndexerMetrics:
    http_requests_total: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    http_retries_total: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    http_latency_ms: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_request(self, endpoint: str, status: str, latency_ms: float) -> None:
        with self._lock:
            self.http_requests_total[(endpoint, status)] += 1
            self.http_latency_ms[endpoint].append(latency_ms)

    def record_retry(self, endpoint: str, reason: str) -> None:
        with self._lock:
            self.http_retries_total[(endpoint, reason)] += 1


class IndexerClient:
    """Synchronous exchange indexer client; safe to share between worker threads."""

    def __init__(
        self,
        config: IndexerConfig,
        *,
        logger: logging.Logger | None = None,
        transport: httpx.BaseTransport | None = None,
        rate_limiter: TokenBucket | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._metrics = IndexerMetrics()
        timeout = httpx.Timeout(
            connect=config.timeout_s,
            read=config.timeout_s,
            write=config.timeout_s,
            pool=config.timeout_s,
        )
        self._client = httpx.Client(base_url=config.base_url, timeout=timeout, transport=transport)
        self._rate_limiter = rate_limiter or TokenBucket(rate_per_sec=config.max_rps)

    @property
    def metrics(self) -> IndexerMetrics:
        return self._metrics

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> IndexerClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def fetch_markets(self) -> list[Market]:
        payload = self._request("GET", MARKETS_ENDPOINT, params={"marketStatus": "active"})
        return parse_markets(payload)

    def fetch_orderbook(self, market_id: str) -> OrderBookSnapshot:
        endpoint = ORDERBOOK_ENDPOINT.format(market_id=market_id)
        payload = self._request("GET", endpoint, label=ORDERBOOK_ENDPOINT)
        return parse_orderbook(payload)

    def fetch_trades(self, market_id: str, limit: int = 100) -> list[Trade]:
        payload = self._request(
            "GET",
            TRADES_ENDPOINT,
            params={"marketId": market_id, "executionSide": "maker", "limit": limit},
        )
        return parse_trades(payload, market_id)

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        label: str | None = None,
    ) -> Any:
        # Metrics are keyed by the endpoint template so per-market paths don't explode cardinality.
        metric_key = label or endpoint
        attempts = self._config.max_retries + 1
        json_retry_budget = min(2, self._config.max_retries)
        json_retry_count = 0

        for attempt in range(1, attempts + 1):
            self._rate_limiter.acquire()
            start = time.monotonic()

            try:
                response = self._client.request(method, endpoint, params=params)
                latency_ms = (time.monotonic() - start) * 1000
                self._metrics.record_request(metric_key, str(response.status_code), latency_ms)
                log_event(
                    self._logger,
                    logging.DEBUG,
                    "http_request",
                    f"{method} {endpoint}",
                    endpoint=metric_key,
                    status=response.status_code,
                    attempt=attempt,
                    latency_ms=round(latency_ms, 2),
                )

                if response.status_code == 429:
                    log_event(
                        self._logger,
                        logging.WARNING,
                        "api_rate_limited",
                        "Rate limit response received; backing off",
                        endpoint=metric_key,
                        attempt=attempt,
                    )
                    if attempt <= self._config.max_retries:
                        self._metrics.record_retry(metric_key, "rate_limited")
                        self._backoff_sleep(attempt)
                        continue
                    raise RateLimitedError("Rate limit exceeded", status_code=429, response_text=response.text)

                if response.status_code >= 500:
                    log_event(
                        self._logger,
                        logging.WARNING,
                        "api_server_error",
                        "Server error response received; backing off",
                        endpoint=metric_key,
                        status=response.status_code,
                        attempt=attempt,
                    )
                    if attempt <= self._config.max_retries:
                        self._metrics.record_retry(metric_key, "server_error")
                        self._backoff_sleep(attempt)
                        continue
                    raise TransientHttpError(
                        "Server error", status_code=response.status_code, response_text=response.text
                    )

                if response.status_code >= 400:
                    raise FatalHttpError(
                        "HTTP error", status_code=response.status_code, response_text=response.text
                    )

                try:
                    return response.json()
                except ValueError as exc:
                    json_retry_count += 1
                    if attempt <= self._config.max_retries and json_retry_count <= json_retry_budget:
                        self._metrics.record_retry(metric_key, "invalid_json")
                        self._backoff_sleep(attempt)
                        continue
                    raise TransientHttpError(
                        "Invalid JSON response", status_code=response.status_code, response_text=response.text
                    ) from exc

            except httpx.TimeoutException as exc:
                latency_ms = (time.monotonic() - start) * 1000
                self._metrics.record_request(metric_key, "timeout", latency_ms)
                if attempt <= self._config.max_retries:
                    self._metrics.record_retry(metric_key, "timeout")
                    self._backoff_sleep(attempt)
                    continue
                self._log_fail(metric_key, "timeout")
                raise TransientHttpError("Request timed out") from exc

            except httpx.RequestError as exc:
                latency_ms = (time.monotonic() - start) * 1000
                self._metrics.record_request(metric_key, "connection_error", latency_ms)
                if attempt <= self._config.max_retries:
                    self._metrics.record_retry(metric_key, "connection_error")
                    self._backoff_sleep(attempt)
                    continue
                self._log_fail(metric_key, "connection_error")
                raise TransientHttpError("Request failed", payload=str(exc)) from exc

            except (RateLimitedError, TransientHttpError, FatalHttpError) as exc:
                self._log_fail(metric_key, type(exc).__name__)
                raise

        raise TransientHttpError("Request failed after retries")

    def _backoff_sleep(self, attempt: int) -> None:
        base = self._config.backoff_base_s
        capped = min(self._config.backoff_max_s, base * (2 ** (attempt - 1)))
        jitter = random.uniform(0, base)
        time.sleep(min(self._config.backoff_max_s, capped + jitter))

    def _log_fail(self, endpoint: str, error_type: str) -> None:
        log_event(
            self._logger,
            logging.ERROR,
            "http_fail",
            f"Request failed for {endpoint}",
            endpoint=endpoint,
            error_type=error_type,
        )
