"""ArbitrageEngine — orchestrates the quote→evaluate→size→execute→record pipeline."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable
from decimal import ROUND_DOWN, Decimal

import structlog

from arbcore.accounting.ledger import ProfitLedger
from arbcore.core.config import Settings, get_settings
from arbcore.core.exceptions import (
    ArbError,
    LifecycleError,
    ParameterError,
    StorageError,
    TransactionError,
)
from arbcore.core.types import (
    ArbEvent,
    ArbEventType,
    ArbitrageOpportunity,
    EngineStatistics,
    EngineStatus,
    ExecutionResult,
    Instruction,
    MarketCondition,
    PriceQuote,
    TokenPair,
    Venue,
    WalletRole,
)
from arbcore.loans.orchestrator import LoanOrchestrator
from arbcore.risk.circuit_breaker import CircuitBreaker
from arbcore.storage.base import PersistedState, StateStore
from arbcore.strategy.evaluator import evaluate_opportunity
from arbcore.strategy.sizer import PositionSizer
from arbcore.venues.base import (
    PriceOracleAdapter,
    SettlementService,
    SignerService,
    WalletDirectory,
)
from arbcore.venues.swaps import build_trade_legs

logger = structlog.stdlib.get_logger()

ArbEventCallback = Callable[[ArbEvent], Awaitable[None] | None]


class EngineState:
    """Lifecycle status and counters shared by the scan loop and executions.

    Admission and release go through one ``asyncio.Condition``; ``stop``
    waits on it until no execution is active. Plain counters are only
    touched between awaits on the event loop thread.
    """

    def __init__(self, max_active: int) -> None:
        self.status = EngineStatus.STOPPED
        self.max_active = max_active
        self.active = 0
        self.peak_active = 0
        self._cond = asyncio.Condition()

        self.opportunities_detected = 0
        self.executed = 0
        self.succeeded = 0
        self.failed = 0
        self.skipped = 0
        self.total_profit = 0
        self.profit_samples = 0
        self.total_duration_ms = 0.0

    async def try_admit(self) -> bool:
        """Claim an execution slot. Never waits for one."""
        async with self._cond:
            if self.status is not EngineStatus.RUNNING or self.active >= self.max_active:
                return False
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            return True

    async def release(self) -> None:
        async with self._cond:
            self.active -= 1
            self._cond.notify_all()

    async def wait_idle(self) -> None:
        async with self._cond:
            await self._cond.wait_for(lambda: self.active == 0)


class ArbitrageEngine:
    """Cross-venue arbitrage coordinator.

    Owns one scan task that quotes every configured venue for each pair
    and dispatches each opportunity as its own task, bounded by
    ``max_concurrent_operations``. Outcomes feed the sizer, the ledger
    and the circuit breaker, and are persisted through the state store.

    Usage::

        engine = ArbitrageEngine(oracle, signer, wallets, store=store)
        engine.on_event(my_callback)
        await engine.start()

        # ... later ...
        await engine.stop()
    """

    def __init__(
        self,
        oracle: PriceOracleAdapter,
        signer: SignerService,
        wallets: WalletDirectory,
        settings: Settings | None = None,
        *,
        sizer: PositionSizer | None = None,
        loans: LoanOrchestrator | None = None,
        ledger: ProfitLedger | None = None,
        breaker: CircuitBreaker | None = None,
        store: StateStore | None = None,
        settlement: SettlementService | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._oracle = oracle
        self._signer = signer
        self._wallets = wallets
        self._store = store
        self._settlement = settlement
        self._config = settings.engine

        self._sizer = sizer or PositionSizer(settings.sizing)
        self._loans = loans or LoanOrchestrator(settings.loan)
        self._ledger = ledger or ProfitLedger(settings.distribution)
        self._breaker = breaker or CircuitBreaker(settings.circuit_breaker)

        self._state = EngineState(self._config.max_concurrent_operations)
        self._callbacks: list[ArbEventCallback] = []
        self._conditions: dict[TokenPair, MarketCondition] = {}
        self._scan_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._save_lock = asyncio.Lock()

    # ── Properties ────────────────────────────────────────────────

    @property
    def status(self) -> EngineStatus:
        return self._state.status

    @property
    def running(self) -> bool:
        return self._state.status is EngineStatus.RUNNING

    @property
    def active_operations(self) -> int:
        return self._state.active

    @property
    def peak_active_operations(self) -> int:
        """Highest number of simultaneously active executions seen."""
        return self._state.peak_active

    @property
    def sizer(self) -> PositionSizer:
        return self._sizer

    @property
    def ledger(self) -> ProfitLedger:
        return self._ledger

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    # ── Events ────────────────────────────────────────────────────

    def on_event(self, callback: ArbEventCallback) -> None:
        """Register a callback for engine events."""
        self._callbacks.append(callback)

    async def _emit(self, event: ArbEvent) -> None:
        """Dispatch an event to all registered callbacks."""
        for cb in self._callbacks:
            try:
                result = cb(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("arb_event_callback_error", event_type=event.event_type)

    # ── Lifecycle ─────────────────────────────────────────────────

    async def start(self) -> None:
        """Restore persisted state and start scanning.

        Raises:
            LifecycleError: the engine is not stopped.
            StorageError: persisted state exists but cannot be read.
        """
        if self._state.status is not EngineStatus.STOPPED:
            raise LifecycleError(f"Cannot start engine while {self._state.status}")

        self._restore_state()
        self._state.status = EngineStatus.RUNNING
        self._scan_task = asyncio.create_task(self._scan_loop())
        logger.info(
            "arb_engine_started",
            pairs=len(self._config.token_pairs),
            venues=[v.value for v in self._config.venues],
        )
        await self._emit(ArbEvent(
            event_type=ArbEventType.ENGINE_STARTED,
            reason="Engine started",
            timestamp=time.time(),
        ))

    async def stop(self) -> None:
        """Stop scanning, wait for active executions to finish, persist state.

        The engine reports ``STOPPING`` until the drain completes; every
        lifecycle command issued meanwhile raises ``LifecycleError``.

        Raises:
            LifecycleError: the engine is already stopped or stopping.
        """
        if self._state.status in (EngineStatus.STOPPED, EngineStatus.STOPPING):
            raise LifecycleError(f"Cannot stop engine while {self._state.status}")

        self._state.status = EngineStatus.STOPPING
        try:
            if self._scan_task is not None:
                self._scan_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._scan_task
                self._scan_task = None

            await self._state.wait_idle()
            await self._save_state()
        finally:
            self._state.status = EngineStatus.STOPPED

        logger.info("arb_engine_stopped", stats=self.get_statistics().model_dump())
        await self._emit(ArbEvent(
            event_type=ArbEventType.ENGINE_STOPPED,
            reason="Engine stopped",
            timestamp=time.time(),
        ))

    async def pause(self) -> None:
        """Stop dispatching new executions; in-flight ones still complete."""
        if self._state.status is not EngineStatus.RUNNING:
            raise LifecycleError(f"Cannot pause engine while {self._state.status}")
        self._state.status = EngineStatus.PAUSED
        logger.info("arb_engine_paused")
        await self._emit(ArbEvent(
            event_type=ArbEventType.ENGINE_PAUSED,
            reason="Engine paused",
            timestamp=time.time(),
        ))

    async def resume(self) -> None:
        """Resume dispatching. Also clears a tripped circuit breaker."""
        if self._state.status is not EngineStatus.PAUSED:
            raise LifecycleError(f"Cannot resume engine while {self._state.status}")
        self._breaker.reset()
        self._state.status = EngineStatus.RUNNING
        logger.info("arb_engine_resumed")
        await self._emit(ArbEvent(
            event_type=ArbEventType.ENGINE_RESUMED,
            reason="Engine resumed",
            timestamp=time.time(),
        ))

    # ── Configuration ─────────────────────────────────────────────

    def update_config(self, settings: Settings) -> None:
        """Hot-swap engine, sizing, loan, distribution and breaker parameters.

        ``settings`` is already validated; nothing here can reject it
        half-way through.
        """
        self._config = settings.engine
        self._state.max_active = settings.engine.max_concurrent_operations
        self._sizer.update_config(settings.sizing)
        self._loans.update_config(settings.loan)
        self._ledger.update_config(settings.distribution)
        self._breaker.update_config(settings.circuit_breaker)
        logger.info(
            "engine_config_updated",
            min_profit_threshold=settings.engine.min_profit_threshold,
            max_concurrent_operations=settings.engine.max_concurrent_operations,
        )

    def set_market_condition(self, pair: TokenPair, condition: MarketCondition | None) -> None:
        """Set (or clear) the market regime used to scale ``pair``'s size."""
        if condition is None:
            self._conditions.pop(pair, None)
        else:
            self._conditions[pair] = condition

    # ── Statistics ────────────────────────────────────────────────

    def get_statistics(self) -> EngineStatistics:
        """Best-effort snapshot of engine activity."""
        s = self._state
        return EngineStatistics(
            status=s.status,
            opportunities_detected=s.opportunities_detected,
            executed=s.executed,
            succeeded=s.succeeded,
            failed=s.failed,
            skipped=s.skipped,
            active_operations=s.active,
            total_profit=s.total_profit,
            avg_profit_per_trade=s.total_profit / s.profit_samples if s.profit_samples else 0.0,
            avg_execution_time_ms=s.total_duration_ms / s.executed if s.executed else 0.0,
        )

    # ── Scanning ──────────────────────────────────────────────────

    async def _scan_loop(self) -> None:
        while True:
            try:
                await self.scan_once()
            except Exception:
                logger.exception("scan_tick_error")
            await asyncio.sleep(self._config.update_interval_ms / 1000.0)

    async def scan_once(self) -> list[ArbitrageOpportunity]:
        """Run one scan tick over the configured pairs.

        Returns the opportunities dispatched for execution this tick.
        """
        dispatched: list[ArbitrageOpportunity] = []
        for pair in list(self._config.token_pairs):
            if self._state.status is not EngineStatus.RUNNING:
                break
            if self._breaker.tripped:
                logger.debug("scan_skipped_breaker_tripped", pair=pair.key)
                break
            if self._state.active >= self._state.max_active:
                self._state.skipped += 1
                logger.debug("scan_skipped_at_capacity", pair=pair.key, active=self._state.active)
                continue

            opportunity = await self._find_opportunity(pair)
            if opportunity is None:
                continue

            self._state.opportunities_detected += 1
            logger.info(
                "opportunity_detected",
                pair=pair.key,
                buy_venue=opportunity.buy_quote.venue,
                sell_venue=opportunity.sell_quote.venue,
                spread_pct=opportunity.spread_pct,
                estimated_profit=opportunity.estimated_profit,
            )
            await self._emit(ArbEvent(
                event_type=ArbEventType.OPPORTUNITY_DETECTED,
                opportunity=opportunity,
                reason=f"Spread {opportunity.spread_pct:.4f}%",
                timestamp=time.time(),
            ))

            if not await self._state.try_admit():
                self._state.skipped += 1
                await self._emit(ArbEvent(
                    event_type=ArbEventType.TRADE_SKIPPED,
                    opportunity=opportunity,
                    reason="No execution slot available",
                    timestamp=time.time(),
                ))
                continue

            task = asyncio.create_task(self._run_execution(opportunity))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            dispatched.append(opportunity)
        return dispatched

    async def _quote(self, venue: Venue, pair: TokenPair) -> PriceQuote | None:
        try:
            return await asyncio.wait_for(
                self._oracle.quote(venue, pair.base, pair.quote),
                timeout=self._config.oracle_timeout_secs,
            )
        except TimeoutError:
            logger.warning("quote_timeout", venue=venue, pair=pair.key)
        except ArbError as exc:
            logger.warning("quote_failed", venue=venue, pair=pair.key, error=str(exc))
        except Exception:
            logger.exception("quote_unexpected_error", venue=venue, pair=pair.key)
        return None

    async def _find_opportunity(self, pair: TokenPair) -> ArbitrageOpportunity | None:
        quotes = await asyncio.gather(*(self._quote(v, pair) for v in self._config.venues))
        usable = [q for q in quotes if q is not None]
        if len(usable) < 2:
            logger.debug("not_enough_quotes", pair=pair.key, quotes=len(usable))
            return None
        return evaluate_opportunity(
            pair,
            usable,
            self._config.min_profit_threshold,
            self._position_cap(pair),
        )

    def _position_cap(self, pair: TokenPair) -> int:
        cap = self._config.max_position_size
        if self._config.use_position_sizer:
            cap = min(cap, self._sizer.size_for(pair, self._conditions.get(pair)))
        return cap

    # ── Execution ─────────────────────────────────────────────────

    async def _run_execution(self, opportunity: ArbitrageOpportunity) -> None:
        try:
            result = await self.execute(opportunity)
            try:
                await self._record_outcome(result)
            except Exception:
                logger.exception("outcome_recording_failed", pair=opportunity.pair.key)
        finally:
            await self._state.release()

    async def execute(self, opportunity: ArbitrageOpportunity) -> ExecutionResult:
        """Execute one opportunity. Never raises; failures become a failed result."""
        started = time.monotonic()
        try:
            result = await self._execute(opportunity)
        except TimeoutError:
            result = ExecutionResult(
                opportunity=opportunity,
                error="Timed out waiting for a network call",
            )
        except ArbError as exc:
            result = ExecutionResult(
                opportunity=opportunity,
                error=f"{type(exc).__name__}: {exc}",
            )
        except Exception as exc:
            logger.exception("arbitrage_unexpected_error", pair=opportunity.pair.key)
            result = ExecutionResult(
                opportunity=opportunity,
                error=f"{type(exc).__name__}: {exc}",
            )
        result.duration_ms = (time.monotonic() - started) * 1000.0

        if result.success:
            logger.info(
                "arbitrage_executed",
                pair=opportunity.pair.key,
                tx_reference=result.tx_reference,
                trade_size=result.trade_size,
                actual_profit=result.actual_profit,
                profit_confirmed=result.profit_confirmed,
                duration_ms=round(result.duration_ms, 2),
            )
        else:
            logger.warning(
                "arbitrage_failed",
                pair=opportunity.pair.key,
                error=result.error,
                duration_ms=round(result.duration_ms, 2),
            )
        return result

    async def _execute(self, opportunity: ArbitrageOpportunity) -> ExecutionResult:
        config = self._config
        pair = opportunity.pair

        wallets = self._wallets.wallets_by_role(WalletRole.TRADING)
        if not wallets:
            raise ParameterError("No trading wallet available")
        wallet = wallets[0]

        loan_fee = 0
        instructions: list[Instruction]
        if config.use_flash_loans:
            amount = opportunity.max_trade_size
            legs = build_trade_legs(opportunity, amount, wallet, config.slippage_tolerance_pct)
            instructions = self._loans.build_bracket(amount, legs, pair.quote, wallet)
            loan_fee = self._loans.fee(amount)
        else:
            balance = await asyncio.wait_for(
                self._wallets.balance(wallet, pair.quote),
                timeout=config.oracle_timeout_secs,
            )
            amount = min(opportunity.max_trade_size, balance)
            if amount <= 0:
                raise ParameterError(f"Insufficient {pair.quote} balance in {wallet}")
            instructions = build_trade_legs(
                opportunity, amount, wallet, config.slippage_tolerance_pct,
            )

        tx_reference = await asyncio.wait_for(
            self._signer.submit_atomic(instructions, [wallet]),
            timeout=config.submission_timeout_secs,
        )
        result = ExecutionResult(
            opportunity=opportunity,
            success=True,
            tx_reference=tx_reference,
            used_loan=config.use_flash_loans,
            loan_fee=loan_fee,
            trade_size=amount,
        )

        if self._settlement is not None:
            await self._settle(self._settlement, result)
        elif config.assume_estimated_profit:
            result.actual_profit = _expected_profit(opportunity, amount, loan_fee)
            logger.info(
                "profit_assumed_unconfirmed",
                tx_reference=tx_reference,
                assumed_profit=result.actual_profit,
            )
        return result

    async def _settle(
        self,
        settlement_service: SettlementService,
        result: ExecutionResult,
    ) -> None:
        """Ask the settlement service for realized profit.

        A settlement that reports the unit as not landed turns the result
        into a failure. A settlement that cannot be reached leaves the
        profit unknown.
        """
        tx_reference = result.tx_reference or ""
        try:
            settlement = await asyncio.wait_for(
                settlement_service.confirm(tx_reference, result.opportunity),
                timeout=self._config.settlement_timeout_secs,
            )
        except (TimeoutError, ArbError) as exc:
            logger.warning(
                "settlement_unavailable",
                tx_reference=tx_reference,
                error=str(exc) or type(exc).__name__,
            )
            return

        if not settlement.confirmed:
            raise TransactionError(
                f"Settlement reports {tx_reference} did not land: {settlement.error}"
            )
        result.actual_profit = settlement.realized_profit
        result.profit_confirmed = True

    # ── Outcome recording ─────────────────────────────────────────

    async def _record_outcome(self, result: ExecutionResult) -> None:
        opportunity = result.opportunity
        pair = opportunity.pair
        token = pair.quote
        profit = result.actual_profit

        # Ledger and sizer can raise StateLockError; engine tallies follow them.
        if not result.success:
            self._ledger.record_failed_trade(token)
        elif profit is None:
            self._ledger.record_unsettled(token)
        elif profit >= 0:
            self._ledger.record_profit(
                token,
                profit,
                sol_value=profit if token == self._config.sol_token else 0,
                usd_value=profit if token in self._config.usd_quote_tokens else 0,
            )
        else:
            logger.warning("arbitrage_loss", pair=pair.key, loss=-profit)
            self._ledger.record_failed_trade(token)

        if self._config.use_position_sizer:
            profit_pct = 0.0
            if profit is not None and result.trade_size > 0:
                profit_pct = profit / result.trade_size
            self._sizer.update(
                pair,
                result.success,
                profit_pct=profit_pct,
                profit_amount=profit or 0,
                execution_time_ms=result.duration_ms,
            )

        s = self._state
        s.executed += 1
        s.total_duration_ms += result.duration_ms
        if result.success:
            s.succeeded += 1
            if profit is not None:
                s.total_profit += profit
                s.profit_samples += 1
        else:
            s.failed += 1

        trigger = self._breaker.record_result(result.success)

        await self._emit(ArbEvent(
            event_type=ArbEventType.TRADE_EXECUTED if result.success else ArbEventType.TRADE_FAILED,
            opportunity=opportunity,
            result=result,
            reason=result.error or "Atomic submission succeeded",
            timestamp=time.time(),
        ))
        if trigger is not None:
            await self._emit(ArbEvent(
                event_type=ArbEventType.CIRCUIT_BREAKER_TRIPPED,
                reason=self._breaker.state.reason,
                timestamp=time.time(),
            ))

        await self._save_state()

    # ── Persistence ───────────────────────────────────────────────

    def _restore_state(self) -> None:
        if self._store is None:
            return
        state = self._store.load()
        if state is None:
            return
        self._sizer.restore(state.positions)
        self._ledger.restore(state.ledger)

    async def _save_state(self) -> None:
        """Snapshot sizer and ledger and write them off the event loop.

        Saves are serialized so a later snapshot never lands before an
        earlier one.
        """
        if self._store is None:
            return
        async with self._save_lock:
            state = PersistedState(
                positions=self._sizer.snapshot(),
                ledger=self._ledger.snapshot(),
                saved_at=time.time(),
            )
            try:
                await asyncio.to_thread(self._store.save, state)
            except StorageError:
                logger.exception("state_save_failed")


def _expected_profit(opportunity: ArbitrageOpportunity, amount: int, loan_fee: int) -> int:
    """Spread-implied profit on ``amount`` minus the loan fee, floored."""
    raw = Decimal(amount) * opportunity.spread_pct / Decimal(100)
    return int(raw.to_integral_value(rounding=ROUND_DOWN)) - loan_fee
