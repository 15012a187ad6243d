from pathlib import Path

import pytest

from market_health.config import AppConfig, ConfigError, load_config


def test_defaults_without_path() -> None:
    loaded = load_config(None)

    assert loaded.raw == {}
    assert loaded.config == AppConfig()
    assert loaded.config.cache.ttl_s == 30
    assert loaded.config.cache.markets_ttl_s == 60
    assert loaded.config.analytics.trades_limit == 100
    assert loaded.config.analytics.volume_trades_limit == 500
    assert loaded.config.live.max_trades_per_market == 100


def test_valid_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        indexer:
          base_url: https://indexer.example.test
          max_rps: 5
        cache:
          ttl_s: 10
        live:
          enabled: true
          markets: [INJ-USDT]
        obs:
          log_level: debug
        """,
        encoding="utf-8",
    )

    loaded = load_config(config_path)

    assert loaded.config.indexer.base_url == "https://indexer.example.test"
    assert loaded.config.indexer.max_rps == 5
    assert loaded.config.cache.ttl_s == 10
    assert loaded.config.live.enabled is True
    assert loaded.config.live.markets == ["INJ-USDT"]
    assert loaded.config.obs.log_level == "DEBUG"
    assert loaded.raw["cache"] == {"ttl_s": 10}


def test_invalid_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        cache:
          ttl_s: -1
        """,
        encoding="utf-8",
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("analytics:\n  window: 5\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_invalid_log_level(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("obs:\n  log_level: chatty\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_missing_file_and_bad_root(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")

    config_path = tmp_path / "config.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_invalid_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("cache: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)
