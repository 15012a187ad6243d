"""
Time-boxed result cache with hit/miss accounting.

Entries expire passively: ``get`` checks the age of the entry and drops it
once it is older than its time-to-live. ``sweep`` removes every expired
entry at once and can run on a background thread via ``start_sweeper``.

Keys follow the ``"<metricKind>:<marketId>"`` convention built by
``make_cache_key``; comparison keys sort their market ids so permutations
of the same set share one entry.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, TypeVar

from market_health.obs.logging import log_event

T = TypeVar("T")

DEFAULT_TTL_S = 30.0


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def make_cache_key(kind: str, market_id: str) -> str:
    return f"{kind}:{market_id}"


def make_compare_key(market_ids: Iterable[str]) -> str:
    return make_cache_key("compare", ",".join(sorted(market_ids)))


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """
    A cached value with its creation time.

    Attributes:
        data: Cached value.
        created_at: Creation time in epoch milliseconds.
        ttl_ms: Time-to-live in milliseconds.
    """
    data: T
    created_at: int
    ttl_ms: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms - self.created_at > self.ttl_ms


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    sets: int
    total: int
    hit_rate: float
    size: int


class ResultCache:
    """Thread-safe TTL cache shared by every request."""

    def __init__(
        self,
        default_ttl_s: float = DEFAULT_TTL_S,
        *,
        clock: Callable[[], int] = _wall_clock_ms,
        logger: logging.Logger | None = None,
    ) -> None:
        if default_ttl_s <= 0:
            raise ValueError("default_ttl_s must be positive")
        self._default_ttl_ms = int(default_ttl_s * 1000)
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._store: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._sweeper: threading.Thread | None = None
        self._sweeper_stop = threading.Event()

    def set(self, key: str, value: Any, ttl_s: float | None = None) -> None:
        ttl_ms = self._default_ttl_ms if ttl_s is None else int(ttl_s * 1000)
        entry = CacheEntry(data=value, created_at=self._clock(), ttl_ms=ttl_ms)
        with self._lock:
            self._store[key] = entry
            self._sets += 1

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._store[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry.data

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def sweep(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        now_ms = self._clock()
        with self._lock:
            expired = [key for key, entry in self._store.items() if entry.is_expired(now_ms)]
            for key in expired:
                del self._store[key]
        return len(expired)

    def stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                sets=self._sets,
                total=total,
                hit_rate=(self._hits / total * 100) if total else 0.0,
                size=len(self._store),
            )

    def start_sweeper(self, interval_s: float) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._sweeper_stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(interval_s,),
            name="result-cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._sweeper_stop.set()
        if self._sweeper is not None:
            self._sweeper.join()
            self._sweeper = None

    def _sweep_loop(self, interval_s: float) -> None:
        while not self._sweeper_stop.wait(interval_s):
            removed = self.sweep()
            if removed:
                log_event(
                    self._logger,
                    logging.DEBUG,
                    "cache_sweep",
                    "Expired cache entries removed",
                    removed=removed,
                )
