"""Test configuration loading from environment."""

from decimal import Decimal

import pytest

from hyperworld.config import HYPERLIQUID_MAINNET_URL, Config

ENV_VARS = [
    "HYPERLIQUID_BASE_URL",
    "ENCRYPTION_KEY",
    "AGENT_DB_PATH",
    "ENGINE_INTERVAL_SECONDS",
    "ENGINE_SPOT_BASE",
    "ENGINE_MAX_LEVERAGE",
    "ENGINE_POSITION_FRACTION",
    "ENGINE_MARKET_CACHE_TTL",
    "ENGINE_MIN_ORDER_NOTIONAL",
    "ENGINE_SPOT_ONLY",
    "DRY_RUN",
    "LOG_LEVEL",
    "LOG_TO_FILE",
    "LOG_DIR",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the test
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return env_file


class TestConfigFromEnv:
    """Test Config.from_env."""

    def test_defaults(self, clean_env):
        config = Config.from_env(clean_env)
        assert config.api.hyperliquid_base_url == HYPERLIQUID_MAINNET_URL
        assert config.engine.interval_seconds == 60.0
        assert config.engine.spot_pair == "HYPE/USDC"
        assert config.engine.perp_coin == "ETH"
        assert config.engine.min_order_notional == Decimal("10")
        assert config.engine.min_balance == Decimal("5")
        assert config.engine.take_profit_pct == Decimal("0.01")
        assert config.engine.buy_cooldown_seconds == 600.0
        assert config.engine.sell_cooldown_seconds == 300.0
        assert config.engine.spot_only is False
        assert config.engine.dry_run is False

    def test_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("ENGINE_SPOT_BASE", "purr")
        monkeypatch.setenv("ENGINE_MIN_ORDER_NOTIONAL", "12.5")
        monkeypatch.setenv("ENGINE_SPOT_ONLY", "true")
        monkeypatch.setenv("DRY_RUN", "1")
        config = Config.from_env(clean_env)
        assert config.engine.spot_base == "PURR"
        assert config.engine.min_order_notional == Decimal("12.5")
        assert config.engine.spot_only is True
        assert config.engine.dry_run is True

    def test_clamps(self, clean_env, monkeypatch):
        monkeypatch.setenv("ENGINE_MAX_LEVERAGE", "500")
        monkeypatch.setenv("ENGINE_POSITION_FRACTION", "1.5")
        monkeypatch.setenv("ENGINE_MARKET_CACHE_TTL", "120")
        monkeypatch.setenv("ENGINE_INTERVAL_SECONDS", "0")
        config = Config.from_env(clean_env)
        assert config.engine.max_leverage == 50
        assert config.engine.position_fraction == Decimal("0.9")
        assert config.engine.market_cache_ttl == 30.0
        assert config.engine.interval_seconds == 1.0

    def test_invalid_numbers_fall_back(self, clean_env, monkeypatch):
        monkeypatch.setenv("ENGINE_MIN_ORDER_NOTIONAL", "ten")
        monkeypatch.setenv("ENGINE_INTERVAL_SECONDS", "soon")
        config = Config.from_env(clean_env)
        assert config.engine.min_order_notional == Decimal("10")
        assert config.engine.interval_seconds == 60.0


class TestLoggingConfig:
    """Test logging settings from environment."""

    def test_defaults(self, clean_env):
        config = Config.from_env(clean_env)
        assert config.logging.level == "INFO"
        assert config.logging.log_to_file is True
        assert config.logging.log_dir == ""

    def test_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_TO_FILE", "false")
        monkeypatch.setenv("LOG_DIR", "/var/log/hyperworld")
        config = Config.from_env(clean_env)
        assert config.logging.level == "DEBUG"
        assert config.logging.log_to_file is False
        assert config.logging.log_dir == "/var/log/hyperworld"
