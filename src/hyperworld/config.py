"""Configuration management for the HyperWorld strategy engine."""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv

HYPERLIQUID_MAINNET_URL = "https://api.hyperliquid.xyz"


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default).strip()
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return Decimal(default)
    return value if value.is_finite() else Decimal(default)


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("true", "1", "yes")


@dataclass
class APIConfig:
    """Exchange, agent store and key material configuration."""

    hyperliquid_base_url: str = HYPERLIQUID_MAINNET_URL
    encryption_key: str = ""
    agent_db_path: str = "dev.db"


@dataclass
class EngineConfig:
    """Strategy engine parameters."""

    interval_seconds: float = 60.0
    spot_base: str = "HYPE"
    spot_quote: str = "USDC"
    perp_coin: str = "ETH"
    min_order_notional: Decimal = Decimal("10")  # Hyperliquid min notional is ~$10
    min_balance: Decimal = Decimal("5")
    take_profit_pct: Decimal = Decimal("0.01")
    buy_cooldown_seconds: float = 600.0
    sell_cooldown_seconds: float = 300.0
    market_cache_ttl: float = 30.0
    max_price_age: float = 30.0
    funding_threshold: Decimal = Decimal("0")
    momentum_threshold: Decimal = Decimal("0.5")  # percent
    momentum_lookback: int = 2  # candles back from the latest
    position_fraction: Decimal = Decimal("0.9")
    max_leverage: int = 20
    close_slippage: Decimal = Decimal("0.01")
    transfer_buffer: Decimal = Decimal("0.01")
    call_timeout: float = 10.0
    spot_only: bool = False
    cooldown_file: str = ""
    dry_run: bool = False
    auto_start: bool = True

    @property
    def spot_pair(self) -> str:
        return f"{self.spot_base}/{self.spot_quote}"


@dataclass
class TelegramConfig:
    """Telegram notification configuration."""

    bot_token: str = ""
    chat_id: str = ""
    account_label: str = ""


@dataclass
class LoggingConfig:
    """Log level and destination."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = ""  # empty = logs/ in the project


@dataclass
class Config:
    """Main configuration container."""

    api: APIConfig = field(default_factory=APIConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_path: Path | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            env_path: Path to .env file (optional)

        Returns:
            Config instance populated from environment
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        api = APIConfig(
            hyperliquid_base_url=os.getenv("HYPERLIQUID_BASE_URL", HYPERLIQUID_MAINNET_URL),
            encryption_key=os.getenv("ENCRYPTION_KEY", ""),
            agent_db_path=os.getenv("AGENT_DB_PATH", "dev.db"),
        )

        max_leverage = min(max(_env_int("ENGINE_MAX_LEVERAGE", 20), 1), 50)

        # Clamp fractions into sane ranges instead of failing at startup
        position_fraction = _env_decimal("ENGINE_POSITION_FRACTION", "0.9")
        if not Decimal("0") < position_fraction <= Decimal("1"):
            position_fraction = Decimal("0.9")

        engine = EngineConfig(
            interval_seconds=max(_env_float("ENGINE_INTERVAL_SECONDS", 60.0), 1.0),
            spot_base=os.getenv("ENGINE_SPOT_BASE", "HYPE").strip().upper(),
            spot_quote=os.getenv("ENGINE_SPOT_QUOTE", "USDC").strip().upper(),
            perp_coin=os.getenv("ENGINE_PERP_COIN", "ETH").strip().upper(),
            min_order_notional=_env_decimal("ENGINE_MIN_ORDER_NOTIONAL", "10"),
            min_balance=_env_decimal("ENGINE_MIN_BALANCE", "5"),
            take_profit_pct=_env_decimal("ENGINE_TAKE_PROFIT_PCT", "0.01"),
            buy_cooldown_seconds=max(_env_float("ENGINE_BUY_COOLDOWN_SECONDS", 600.0), 0.0),
            sell_cooldown_seconds=max(_env_float("ENGINE_SELL_COOLDOWN_SECONDS", 300.0), 0.0),
            market_cache_ttl=min(max(_env_float("ENGINE_MARKET_CACHE_TTL", 30.0), 0.0), 30.0),
            max_price_age=max(_env_float("ENGINE_MAX_PRICE_AGE", 30.0), 0.0),
            funding_threshold=_env_decimal("ENGINE_FUNDING_THRESHOLD", "0"),
            momentum_threshold=_env_decimal("ENGINE_MOMENTUM_THRESHOLD", "0.5"),
            momentum_lookback=max(_env_int("ENGINE_MOMENTUM_LOOKBACK", 2), 1),
            position_fraction=position_fraction,
            max_leverage=max_leverage,
            close_slippage=_env_decimal("ENGINE_CLOSE_SLIPPAGE", "0.01"),
            transfer_buffer=_env_decimal("ENGINE_TRANSFER_BUFFER", "0.01"),
            call_timeout=max(_env_float("ENGINE_CALL_TIMEOUT", 10.0), 0.1),
            spot_only=_env_bool("ENGINE_SPOT_ONLY", False),
            cooldown_file=os.getenv("ENGINE_COOLDOWN_FILE", "").strip(),
            dry_run=_env_bool("DRY_RUN", False),
            auto_start=_env_bool("AUTO_START", True),
        )

        telegram = TelegramConfig(
            bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
            chat_id=os.getenv("TELEGRAM_CHAT_ID", ""),
            account_label=os.getenv("TELEGRAM_ACCOUNT_LABEL", ""),
        )

        logging_cfg = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
            log_to_file=_env_bool("LOG_TO_FILE", True),
            log_dir=os.getenv("LOG_DIR", "").strip(),
        )

        return cls(api=api, engine=engine, telegram=telegram, logging=logging_cfg)
