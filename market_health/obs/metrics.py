from __future__ import annotations

from typing import Any

from market_health.indexer.client import IndexerMetrics

_LATENCY_BUCKETS_MS = (25, 50, 100, 250, 500, 1000, 2000, 5000)


def summarize_http_metrics(metrics: IndexerMetrics) -> dict[str, Any]:
    requests_total = sum(metrics.http_requests_total.values())
    retries_total = sum(metrics.http_retries_total.values())
    requests_by_status: dict[str, int] = {}
    errors_total = 0
    for (_endpoint, status), count in metrics.http_requests_total.items():
        requests_by_status[status] = requests_by_status.get(status, 0) + count
        try:
            status_code = int(status)
        except (TypeError, ValueError):
            errors_total += count
        else:
            if not 200 <= status_code < 300:
                errors_total += count

    http_429_total = requests_by_status.get("429", 0)
    http_5xx_total = 0
    for status, count in requests_by_status.items():
        try:
            status_code = int(status)
        except (TypeError, ValueError):
            continue
        if 500 <= status_code <= 599:
            http_5xx_total += count

    latencies = [value for values in metrics.http_latency_ms.values() for value in values]
    buckets: dict[str, int] = {}
    for bound in _LATENCY_BUCKETS_MS:
        buckets[str(bound)] = sum(1 for value in latencies if value <= bound)
    buckets["+inf"] = len(latencies)

    return {
        "requests_total": requests_total,
        "errors_total": errors_total,
        "retries_total": retries_total,
        "requests_by_status": requests_by_status,
        "http_429_total": http_429_total,
        "http_5xx_total": http_5xx_total,
        "api_health": summarize_api_health(http_429_total, http_5xx_total),
        "latency_ms": {
            "count": len(latencies),
            "min": min(latencies) if latencies else None,
            "max": max(latencies) if latencies else None,
            "buckets": buckets,
        },
    }


def summarize_api_health(http_429_total: int, http_5xx_total: int) -> str:
    if http_5xx_total > 0:
        return "api_unstable"
    if http_429_total > 0:
        return "degraded"
    return "ok"
