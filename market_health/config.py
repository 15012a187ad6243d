from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or validated."""


class IndexerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(default="https://sentry.exchange.grpc-web.injective.network")
    timeout_s: float = Field(default=10, gt=0)
    max_retries: int = Field(default=3, ge=0)
    backoff_base_s: float = Field(default=0.5, ge=0)
    backoff_max_s: float = Field(default=8, ge=0)
    max_rps: float = Field(default=10.0, gt=0)


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ttl_s: float = Field(default=30, gt=0)
    markets_ttl_s: float = Field(default=60, gt=0)
    sweep_interval_s: float = Field(default=60, ge=0)


class AnalyticsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    volatility_window_minutes: float = Field(default=60, gt=0)
    trades_limit: int = Field(default=100, gt=0)
    volume_trades_limit: int = Field(default=500, gt=0)
    compare_max_workers: int = Field(default=5, gt=0)


class LiveConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False)
    prefer_live: bool = Field(default=True)
    max_trades_per_market: int = Field(default=100, gt=0)
    poll_interval_s: float = Field(default=2.0, gt=0)
    markets: list[str] = Field(default_factory=list)


class ObsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    log_jsonl: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return normalized


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    live: LiveConfig = Field(default_factory=LiveConfig)
    obs: ObsConfig = Field(default_factory=ObsConfig)


@dataclass(frozen=True)
class LoadedConfig:
    config: AppConfig
    raw: dict[str, Any]


def load_config(path: Path | None) -> LoadedConfig:
    if path is None:
        return LoadedConfig(config=AppConfig(), raw={})

    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a mapping")

    try:
        config = AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    return LoadedConfig(config=config, raw=payload)
