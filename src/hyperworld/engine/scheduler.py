"""Strategy engine scheduler.

Runs one cycle per tick. A cycle loads active agents, resolves the shared
market snapshots and signals once, then walks the agents one by one
through the per-agent pipeline:

    signer -> accounts -> legacy cleanup -> funding transfer -> refresh
    -> decide -> cooldown gate -> submit -> record
"""

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from hyperworld.agents.models import Agent
from hyperworld.agents.signer import SignerResolver
from hyperworld.agents.store import AgentStore
from hyperworld.config import EngineConfig
from hyperworld.core.cooldown import CooldownTracker
from hyperworld.core.errors import GatewayError, MarketDataUnavailable
from hyperworld.core.precision import format_decimal
from hyperworld.core.types import MarketKind
from hyperworld.engine.reports import AgentCycleReport, CycleReport
from hyperworld.execution.base import ExchangeGateway
from hyperworld.execution.models import AgentAccounts, OrderRequest, utc_now
from hyperworld.logging import get_logger, log_context
from hyperworld.market.models import Candle, MarketSnapshot
from hyperworld.market.resolver import NEUTRAL_FUNDING, MarketSnapshotResolver
from hyperworld.notifications.telegram import TelegramNotifier
from hyperworld.reconcile.balance import BalanceReconciler
from hyperworld.reconcile.legacy import LegacyPositionReconciler, disallowed_positions
from hyperworld.strategy.base import NoAction, OrderDecision, Strategy, StrategyContext
from hyperworld.strategy.registry import StrategyRegistry

logger = get_logger("engine")


class TradingEngine:
    """Periodic multi-agent strategy runner.

    Cycles never overlap. The loop re-arms itself on a fixed grid; ticks
    that fall inside a running cycle are skipped and logged. A cycle that
    fails is logged and the next tick still fires.
    """

    def __init__(
        self,
        config: EngineConfig,
        store: AgentStore,
        signer_resolver: SignerResolver,
        gateway: ExchangeGateway,
        resolver: MarketSnapshotResolver | None = None,
        cooldowns: CooldownTracker | None = None,
        notifier: TelegramNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize engine.

        Args:
            config: Engine configuration
            store: Source of agent records
            signer_resolver: Decrypts agent signing keys
            gateway: Exchange gateway (live or mock)
            resolver: Market snapshot resolver (built from gateway if omitted)
            cooldowns: Cooldown tracker (in-memory with config windows if omitted)
            notifier: Telegram notifier (disabled if omitted)
            clock: Source of the current UTC time
        """
        self._config = config
        self._store = store
        self._signers = signer_resolver
        self._gateway = gateway
        self._clock = clock
        self._resolver = resolver or MarketSnapshotResolver(
            gateway,
            cache_ttl=config.market_cache_ttl,
            max_price_age=config.max_price_age,
            clock=clock,
        )
        self._cooldowns = cooldowns or CooldownTracker(
            buy_cooldown=timedelta(seconds=config.buy_cooldown_seconds),
            sell_cooldown=timedelta(seconds=config.sell_cooldown_seconds),
        )
        self._notifier = notifier or TelegramNotifier()
        self._registry = StrategyRegistry(config)
        self._legacy = LegacyPositionReconciler(gateway, self._resolver, config.close_slippage)
        self._balance = BalanceReconciler(
            gateway, config.min_order_notional, config.transfer_buffer
        )

        self._running = False
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._cycle_in_progress = False
        self._cycle_count = 0
        self._skipped_ticks = 0
        self._started_at: datetime | None = None
        self._last_cycle: CycleReport | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cooldowns(self) -> CooldownTracker:
        return self._cooldowns

    @property
    def last_cycle(self) -> CycleReport | None:
        return self._last_cycle

    # Lifecycle

    async def start(self) -> None:
        """Start the recurring cycle. The first cycle runs immediately."""
        if self._running:
            logger.warning("Engine already running, start ignored")
            return
        self._running = True
        self._started_at = self._clock()
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            f"Engine started (interval: {self._config.interval_seconds}s, "
            f"gateway: {self._gateway.name})"
        )

    async def stop(self) -> None:
        """Stop future ticks. A cycle in flight is allowed to finish."""
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info(f"Engine stopped after {self._cycle_count} cycles")

    async def wait(self) -> None:
        """Block until the loop exits."""
        if self._task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def _run_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._config.interval_seconds
        next_tick = loop.time()
        while self._running:
            await self.run_cycle()
            if not self._running:
                break

            next_tick += interval
            now = loop.time()
            if now >= next_tick:
                missed = int((now - next_tick) // interval) + 1
                self._skipped_ticks += missed
                logger.warning(f"Cycle overran the interval, skipping {missed} tick(s)")
                next_tick += missed * interval

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=next_tick - now)

    def status(self) -> dict[str, Any]:
        """Engine state and strategy thresholds."""
        cfg = self._config
        return {
            "running": self._running,
            "gateway": self._gateway.name,
            "interval_seconds": cfg.interval_seconds,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "cycle_count": self._cycle_count,
            "cycle_in_progress": self._cycle_in_progress,
            "skipped_ticks": self._skipped_ticks,
            "pairs": {"spot": cfg.spot_pair, "perp": cfg.perp_coin},
            "spot_only": cfg.spot_only,
            "thresholds": {
                "funding_threshold": str(cfg.funding_threshold),
                "min_balance": str(cfg.min_balance),
                "min_order_notional": str(cfg.min_order_notional),
                "take_profit_pct": str(cfg.take_profit_pct),
                "momentum_threshold": str(cfg.momentum_threshold),
            },
            "cooldowns": {
                "buy_seconds": cfg.buy_cooldown_seconds,
                "sell_seconds": cfg.sell_cooldown_seconds,
            },
            "strategies": [s.get_config() for s in self._registry.all()],
            "last_cycle": self._last_cycle.to_dict() if self._last_cycle else None,
        }

    # Cycle

    async def run_cycle(self) -> CycleReport:
        """Run one cycle over all active agents. Never raises."""
        if self._cycle_in_progress:
            self._skipped_ticks += 1
            logger.warning("Previous cycle still running, skipping tick")
            return CycleReport(cycle=self._cycle_count, started_at=self._clock(), skipped=True)

        self._cycle_in_progress = True
        self._cycle_count += 1
        report = CycleReport(cycle=self._cycle_count, started_at=self._clock())
        try:
            with log_context(cycle=report.cycle):
                await self._run_cycle(report)
        except Exception as e:
            report.error = str(e)
            logger.error(f"Cycle #{report.cycle} abandoned: {e}")
            await self._notifier.notify_cycle_failure(str(e))
        finally:
            report.finished_at = self._clock()
            self._last_cycle = report
            self._cycle_in_progress = False

        logger.info(report.summary())
        return report

    async def _run_cycle(self, report: CycleReport) -> None:
        agents = await self._store.list_active_agents()
        if not agents:
            logger.info("No active agents")
            return

        strategies = {self._registry.profile_for(a): self._registry.for_agent(a) for a in agents}
        snapshots = await self._resolve_snapshots(
            {s.market_kind for s in strategies.values()}, report
        )

        funding = NEUTRAL_FUNDING
        if any(s.uses_funding for s in strategies.values()):
            funding = await self._resolver.funding_rate(self._config.perp_coin)

        candles: list[Candle] = []
        if any(s.uses_candles for s in strategies.values()):
            candles = await self._resolver.candles(self._config.perp_coin)

        logger.info(f"Cycle #{report.cycle}: {len(agents)} active agents")
        for agent in agents:
            report.agents.append(await self._process_agent(agent, snapshots, funding, candles))

    async def _resolve_snapshots(
        self, kinds: set[MarketKind], report: CycleReport
    ) -> dict[MarketKind, MarketSnapshot]:
        """Resolve each needed pair once. Fails the cycle if none resolves."""
        snapshots: dict[MarketKind, MarketSnapshot] = {}
        for kind in sorted(kinds, key=lambda k: k.value):
            try:
                if kind is MarketKind.SPOT:
                    snapshots[kind] = await self._resolver.resolve_spot(
                        self._config.spot_base, self._config.spot_quote
                    )
                else:
                    snapshots[kind] = await self._resolver.resolve_perp(self._config.perp_coin)
            except MarketDataUnavailable as e:
                report.unavailable_pairs[e.pair] = str(e)
                logger.warning(f"{e}; agents trading {e.pair} skip this cycle")

        if kinds and not snapshots:
            raise MarketDataUnavailable(
                ", ".join(report.unavailable_pairs) or "all pairs",
                list(report.unavailable_pairs),
            )
        return snapshots

    # Per-agent pipeline

    async def _process_agent(
        self,
        agent: Agent,
        snapshots: dict[MarketKind, MarketSnapshot],
        funding: Decimal,
        candles: list[Candle],
    ) -> AgentCycleReport:
        strategy = self._registry.for_agent(agent)
        result = AgentCycleReport(
            agent_id=agent.id,
            wallet_address=agent.wallet_address,
            strategy=strategy.name,
        )
        try:
            with log_context(agent_id=agent.id):
                await self._run_pipeline(agent, strategy, snapshots, funding, candles, result)
        except Exception as e:
            result.error = str(e)
            logger.error(f"{agent.label}: {type(e).__name__}: {e}")
        return result

    async def _run_pipeline(
        self,
        agent: Agent,
        strategy: Strategy,
        snapshots: dict[MarketKind, MarketSnapshot],
        funding: Decimal,
        candles: list[Candle],
        result: AgentCycleReport,
    ) -> None:
        if not agent.is_active:
            result.skipped = "inactive"
            return

        snapshot = snapshots.get(strategy.market_kind)
        if snapshot is None:
            result.skipped = "market data unavailable"
            logger.info(f"{agent.label}: no {strategy.market_kind.value} snapshot, skipping")
            return

        logger.info(
            f"Processing {agent.label} [{strategy.name}, {agent.strategy_config.leverage}x]"
        )
        signer = self._signers.resolve(agent.encrypted_secret)
        accounts = await self._fetch_accounts(agent)
        moved = False

        # 1. Legacy positions the mandate forbids
        if disallowed_positions(accounts.perp, strategy.mandate):
            accepted = await self._legacy.reconcile(
                agent, signer, accounts.perp, strategy.mandate
            )
            # Only the refreshed perp state proves the positions are gone
            accounts = await self._refresh_accounts(agent, result)
            remaining = disallowed_positions(accounts.perp, strategy.mandate)
            cleared = accepted and not remaining
            result.legacy_closed = cleared
            await self._notifier.notify_legacy_close(agent.label, cleared)
            if not cleared:
                result.skipped = "legacy perp positions still open"
                logger.info(
                    f"{agent.label}: strategy skipped, {len(remaining)} legacy position(s) open"
                )
                return

        # 2. Fund the trading sub-account from its sibling
        transferred = await self._balance.reconcile(
            agent, signer, accounts, strategy.sub_account
        )
        if transferred is not None:
            result.transfers.append(transferred)
            moved = True
            await self._notifier.notify_transfer(
                agent.label,
                transferred,
                strategy.sub_account.sibling.value,
                strategy.sub_account.value,
            )

        # 3. Decisions must see post-transfer balances
        if moved:
            accounts = await self._refresh_accounts(agent, result)

        snapshot = await self._resolver.revalidate(snapshot)
        context = StrategyContext(
            agent_id=agent.id,
            now=self._clock(),
            leverage=agent.strategy_config.leverage,
            funding_rate=funding,
            candles=candles,
            cooldowns=self._cooldowns,
        )
        account = accounts.for_sub_account(strategy.sub_account)
        for decision in strategy.decide(snapshot, account, context):
            if isinstance(decision, NoAction):
                result.reasons.append(decision.reason)
                logger.info(f"{agent.label}: no action ({decision.reason})")
                continue
            await self._execute(agent, signer, snapshot, decision, result)

    async def _execute(
        self,
        agent: Agent,
        signer: Any,
        snapshot: MarketSnapshot,
        decision: OrderDecision,
        result: AgentCycleReport,
    ) -> None:
        now = self._clock()
        if self._cooldowns.should_throttle(agent.id, decision.action_kind, now):
            remaining = self._cooldowns.remaining(agent.id, decision.action_kind, now)
            result.reasons.append(f"{decision.action_kind.value} cooldown")
            logger.info(
                f"{agent.label}: {decision.action_kind.value} cooldown active "
                f"({remaining:.0f}s left)"
            )
            return

        request = OrderRequest(
            order_name=snapshot.order_name,
            asset_id=snapshot.asset_id,
            side=decision.side,
            price=decision.price,
            size=decision.size,
            reduce_only=decision.reduce_only,
            time_in_force=decision.time_in_force,
        )
        logger.info(
            f"{agent.label}: {decision.side.value.upper()} {format_decimal(request.size)} "
            f"{snapshot.pair} @ {format_decimal(request.price)} "
            f"(~{request.notional:.2f} USDC, {decision.reason})"
        )
        try:
            ack = await self._gateway.place_order(signer, agent.wallet_address, request)
        except GatewayError as e:
            result.reasons.append(f"order failed: {e}")
            logger.error(f"{agent.label}: order failed: {e}")
            return

        self._cooldowns.record_action(agent.id, decision.action_kind, self._clock())
        result.orders.append(ack)
        logger.info(f"{agent.label}: order {ack.status} (id: {ack.order_id or '-'})")
        await self._notifier.notify_order(agent.label, ack, decision.reason)

    async def _fetch_accounts(self, agent: Agent) -> AgentAccounts:
        spot = await self._gateway.get_spot_state(agent.wallet_address)
        perp = await self._gateway.get_perp_state(agent.wallet_address)
        return AgentAccounts(spot=spot, perp=perp)

    async def _refresh_accounts(self, agent: Agent, result: AgentCycleReport) -> AgentAccounts:
        """Re-read both sub-accounts after a balance-moving action."""
        result.refreshed = True
        logger.debug(f"{agent.label}: refreshing account state")
        return await self._fetch_accounts(agent)
