"""HyperWorld strategy engine - entry point.

This service:
1. Loads active trading agents from the agent store every cycle
2. Resolves market snapshots and signals once per cycle (HYPE/USDC spot, ETH perp)
3. Closes legacy perp positions that violate an agent's mandate
4. Moves idle USDC between spot and perp sub-accounts when needed
5. Runs each agent's strategy (Conservative / Aggressive / Spot DCA)
6. Submits orders on Hyperliquid (or the simulated gateway in DRY_RUN)

Flags:
    --once       run a single cycle and exit
    --dry-run    simulate fills and transfers (same as DRY_RUN=true)
    --debug      verbose logging
"""

import asyncio
import contextlib
import json
import logging
import signal
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

from hyperworld.agents import SignerResolver, SqliteAgentStore
from hyperworld.config import Config
from hyperworld.core.cooldown import CooldownTracker
from hyperworld.engine import TradingEngine
from hyperworld.execution import ExchangeGateway, MockGateway
from hyperworld.execution.hyperliquid import HyperliquidGateway
from hyperworld.logging import parse_level, setup_logging
from hyperworld.market import MarketSnapshotResolver
from hyperworld.notifications import TelegramNotifier

DRY_RUN_BALANCE = Decimal("1000")


def build_engine(config: Config) -> TradingEngine:
    """Wire the engine from configuration."""
    engine_cfg = config.engine

    live = HyperliquidGateway(config.api.hyperliquid_base_url, engine_cfg.call_timeout)
    gateway: ExchangeGateway = live
    if engine_cfg.dry_run:
        # Real market data, simulated wallets
        gateway = MockGateway(market_source=live, initial_balance=DRY_RUN_BALANCE)

    resolver = MarketSnapshotResolver(
        gateway,
        cache_ttl=engine_cfg.market_cache_ttl,
        max_price_age=engine_cfg.max_price_age,
    )

    cooldowns = CooldownTracker(
        buy_cooldown=timedelta(seconds=engine_cfg.buy_cooldown_seconds),
        sell_cooldown=timedelta(seconds=engine_cfg.sell_cooldown_seconds),
        state_file=Path(engine_cfg.cooldown_file) if engine_cfg.cooldown_file else None,
    )

    notifier = TelegramNotifier(
        config.telegram.bot_token,
        config.telegram.chat_id,
        config.telegram.account_label,
    )

    return TradingEngine(
        engine_cfg,
        store=SqliteAgentStore(config.api.agent_db_path),
        signer_resolver=SignerResolver(config.api.encryption_key),
        gateway=gateway,
        resolver=resolver,
        cooldowns=cooldowns,
        notifier=notifier,
    )


def _log_banner(logger: logging.Logger, config: Config) -> None:
    cfg = config.engine
    logger.info("=" * 60)
    logger.info("HyperWorld Strategy Engine")
    logger.info("=" * 60)
    logger.info(f"Exchange: {config.api.hyperliquid_base_url}")
    logger.info(f"Agent store: {config.api.agent_db_path}")
    logger.info(f"Spot pair: {cfg.spot_pair} | Perp coin: {cfg.perp_coin}")
    logger.info(f"Interval: {cfg.interval_seconds}s | Min notional: {cfg.min_order_notional} USDC")
    if cfg.spot_only:
        logger.info("Mandate: spot-only for every agent")
    if cfg.dry_run:
        logger.info(f"Mode: DRY_RUN (simulated wallets, ${DRY_RUN_BALANCE} initial balance)")
    else:
        logger.info("Mode: LIVE (real orders on Hyperliquid)")
    logger.info("=" * 60)


async def main_async(once: bool = False, dry_run: bool = False, debug: bool = False) -> None:
    """Async main entry point.

    Args:
        once: Run a single cycle and return
        dry_run: Force simulated execution
        debug: Enable debug logging
    """
    config = Config.from_env()
    log_cfg = config.logging
    logger = setup_logging(
        level=logging.DEBUG if debug else parse_level(log_cfg.level),
        log_to_file=log_cfg.log_to_file,
        log_dir=Path(log_cfg.log_dir) if log_cfg.log_dir else None,
    )
    if dry_run:
        config.engine.dry_run = True

    _log_banner(logger, config)
    engine = build_engine(config)

    if once:
        report = await engine.run_cycle()
        logger.info(json.dumps(report.to_dict(), indent=2))
        return

    if not config.engine.auto_start:
        logger.info("AUTO_START is disabled, engine not started")
        return

    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("Shutdown signal received")
        asyncio.create_task(engine.stop())

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown_handler)

    try:
        await engine.start()
        await engine.wait()
    finally:
        await engine.stop()
        logger.info(json.dumps(engine.status(), indent=2, default=str))


def main() -> None:
    """Application entry point."""
    once = "--once" in sys.argv
    dry_run = "--dry-run" in sys.argv
    debug = "--debug" in sys.argv

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main_async(once=once, dry_run=dry_run, debug=debug))


if __name__ == "__main__":
    main()
