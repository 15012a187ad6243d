from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict
from pathlib import Path
from secrets import token_hex
from typing import Any

from market_health import __version__
from market_health.config import AppConfig, ConfigError, load_config
from market_health.errors import (
    MarketHealthError,
    MarketNotFoundError,
    MarketValidationError,
    UpstreamFailureError,
)
from market_health.indexer.client import IndexerClient
from market_health.models.market import Market
from market_health.obs.logging import LogSettings, build_logger, log_event
from market_health.service import MarketHealthService
from market_health.store.cache import ResultCache
from market_health.store.feed import PollingFeed
from market_health.store.live import LiveDataAggregator

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_VALIDATION_ERROR = 2
EXIT_NOT_FOUND = 3
EXIT_UPSTREAM_ERROR = 4

METRIC_COMMANDS = ("liquidity", "volatility", "volume", "health", "risk")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Market health scoring CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to config YAML")
    parser.add_argument("--log-level", help="Override obs.log_level")
    parser.add_argument("--log-file", help="Also write logs to this file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("markets", help="List active spot markets")

    market_parser = subparsers.add_parser("market", help="Show one market descriptor")
    market_parser.add_argument("market_id", help="Market id (0x...) or ticker (BASE-QUOTE)")

    for command in METRIC_COMMANDS:
        metric_parser = subparsers.add_parser(command, help=f"Compute {command} metrics for one market")
        metric_parser.add_argument("market_id", help="Market id (0x...) or ticker (BASE-QUOTE)")

    compare_parser = subparsers.add_parser("compare", help="Compare 2-5 markets by health")
    compare_parser.add_argument("market_ids", nargs="+", help="Market ids, space or comma separated")

    subparsers.add_parser("status", help="Show service status")

    watch_parser = subparsers.add_parser("watch", help="Feed the live store, then report health")
    watch_parser.add_argument("market_ids", nargs="*", help="Markets to watch (default: live.markets)")
    watch_parser.add_argument("--duration", type=float, default=10.0, help="Seconds to poll before reporting")
    watch_parser.add_argument("--interval", type=float, help="Override live.poll_interval_s")

    return parser.parse_args(argv)


def generate_session_id() -> str:
    return f"{int(time.time())}_{token_hex(3)}"


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _split_ids(values: list[str]) -> list[str]:
    return [item.strip() for value in values for item in value.split(",") if item.strip()]


def _build_feed(
    config: AppConfig,
    client: IndexerClient,
    logger: logging.Logger,
    interval_s: float | None = None,
) -> tuple[LiveDataAggregator, PollingFeed]:
    live = LiveDataAggregator(config.live.max_trades_per_market, logger=logger)
    feed = PollingFeed(
        client,
        live,
        interval_s=interval_s or config.live.poll_interval_s,
        trades_limit=config.analytics.trades_limit,
        logger=logger,
    )
    return live, feed


def _watch_markets(service: MarketHealthService, feed: PollingFeed, market_ids: list[str]) -> list[Market]:
    resolved = [service.get_market(market_id) for market_id in market_ids]
    for market in resolved:
        feed.watch(market.market_id)
    return resolved


def _run_watch(
    args: argparse.Namespace,
    config: AppConfig,
    client: IndexerClient,
    service_kwargs: dict[str, Any],
) -> MarketHealthService:
    market_ids = _split_ids(args.market_ids) or list(config.live.markets)
    if not market_ids:
        raise MarketValidationError("No markets to watch: pass ids or set live.markets")

    live, feed = _build_feed(config, client, service_kwargs["logger"], args.interval)
    service = MarketHealthService(client, config, live=live, feed=feed, **service_kwargs)
    resolved = _watch_markets(service, feed, market_ids)

    feed.start()
    try:
        time.sleep(max(0.0, args.duration))
    finally:
        feed.stop()

    _print_json([asdict(service.health(market.market_id)) for market in resolved])
    return service


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    session_id = generate_session_id()

    logger = build_logger(LogSettings(level="INFO", session_id=session_id, log_file=None, jsonl=True))
    try:
        loaded = load_config(Path(args.config) if args.config else None)
    except ConfigError as exc:
        log_event(logger, 40, "config_invalid", str(exc))
        return EXIT_CONFIG_ERROR
    config = loaded.config

    logger = build_logger(
        LogSettings(
            level=(args.log_level or config.obs.log_level).upper(),
            session_id=session_id,
            log_file=Path(args.log_file) if args.log_file else None,
            jsonl=config.obs.log_jsonl,
        )
    )

    cache = ResultCache(config.cache.ttl_s, logger=logger)
    if config.cache.sweep_interval_s > 0:
        cache.start_sweeper(config.cache.sweep_interval_s)

    try:
        with IndexerClient(config.indexer, logger=logger) as client:
            service_kwargs: dict[str, Any] = {"cache": cache, "logger": logger}
            if args.command == "watch":
                service = _run_watch(args, config, client, service_kwargs)
                _print_json(service.status())
                return EXIT_OK

            if config.live.enabled and config.live.markets:
                live, feed = _build_feed(config, client, logger)
                service = MarketHealthService(client, config, live=live, feed=feed, **service_kwargs)
                _watch_markets(service, feed, list(config.live.markets))
                feed.poll_once()
            else:
                service = MarketHealthService(client, config, **service_kwargs)

            if args.command == "markets":
                _print_json([asdict(market) for market in service.list_markets()])
            elif args.command == "market":
                _print_json(asdict(service.get_market(args.market_id)))
            elif args.command in METRIC_COMMANDS:
                report = getattr(service, args.command)(args.market_id)
                _print_json(asdict(report))
            elif args.command == "compare":
                _print_json(asdict(service.compare(_split_ids(args.market_ids))))
            elif args.command == "status":
                _print_json(service.status())
            else:
                raise ValueError(f"Unsupported command: {args.command}")
    except MarketValidationError as exc:
        log_event(logger, 40, "request_invalid", str(exc))
        return EXIT_VALIDATION_ERROR
    except MarketNotFoundError as exc:
        log_event(logger, 40, "market_not_found", str(exc), market_id=exc.market_id)
        return EXIT_NOT_FOUND
    except UpstreamFailureError as exc:
        log_event(logger, 40, "upstream_failed", str(exc), market_id=exc.market_id)
        return EXIT_UPSTREAM_ERROR
    except MarketHealthError as exc:
        log_event(logger, 40, "request_failed", str(exc))
        return EXIT_FAILURE
    finally:
        cache.stop_sweeper()

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
