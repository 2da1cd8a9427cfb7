"""Position sizing — adaptive per-pair capital commitment under risk limits."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import ROUND_DOWN, Decimal

import structlog

from arbcore.core.config import SizingConfig, get_settings
from arbcore.core.exceptions import StateLockError
from arbcore.core.types import (
    MarketCondition,
    PerformanceStatistics,
    PositionState,
    TokenPair,
    TradeRecord,
    VolatilityLevel,
)

logger = structlog.stdlib.get_logger()

DAY_SECS = 24 * 60 * 60

_VOLATILITY_FACTORS: dict[VolatilityLevel, Decimal] = {
    VolatilityLevel.LOW: Decimal("1.0"),
    VolatilityLevel.MEDIUM: Decimal("0.8"),
    VolatilityLevel.HIGH: Decimal("0.6"),
    VolatilityLevel.EXTREME: Decimal("0.3"),
}


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_DOWN))


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


def trend_factor(trend_direction: int) -> Decimal:
    """Uptrends add up to +50 %, downtrends remove up to -100 %."""
    if trend_direction > 0:
        return Decimal(1) + Decimal(trend_direction) / Decimal(200)
    return Decimal(1) + Decimal(trend_direction) / Decimal(100)


class PositionSizer:
    """Grows a pair's position after wins and shrinks it after losses.

    Sizes are bounded to ``[base/2, min(max, baseline * max_daily_growth)]``
    where ``baseline`` is the pair's size at the start of its current
    24-hour window. Pairs are initialized lazily to ``base_position_size``.

    All reads and writes go through one lock; if the lock cannot be taken
    within ``lock_timeout_secs`` the call raises ``StateLockError`` and
    nothing changes.
    """

    def __init__(
        self,
        config: SizingConfig | None = None,
        clock: Callable[[], float] = time.time,
        lock_timeout_secs: float = 1.0,
    ) -> None:
        self._config = config or get_settings().sizing
        self._clock = clock
        self._lock_timeout = lock_timeout_secs
        self._lock = threading.Lock()
        self._states: dict[TokenPair, PositionState] = {}
        self._history: list[TradeRecord] = []

    @property
    def config(self) -> SizingConfig:
        return self._config

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise StateLockError("Timed out waiting for position sizer state")
        try:
            yield
        finally:
            self._lock.release()

    # ── State access (caller holds the lock) ─────────────────────

    def _effective_state(self, pair: TokenPair, now: float) -> PositionState:
        """Pair state with lazy init and daily rollover applied, not stored."""
        state = self._states.get(pair)
        if state is None:
            base = self._config.base_position_size
            return PositionState(size=base, baseline_size=base, baseline_at=now)
        if now - state.baseline_at >= DAY_SECS:
            return PositionState(size=state.size, baseline_size=state.size, baseline_at=now)
        return state

    def _state(self, pair: TokenPair, now: float) -> PositionState:
        state = self._effective_state(pair, now)
        if self._states.get(pair) is not state:
            if pair in self._states:
                logger.info(
                    "position_baseline_reset",
                    pair=pair.key,
                    baseline_size=state.baseline_size,
                )
            self._states[pair] = state
        return state

    def _clamp(self, size: int, baseline_size: int) -> int:
        cfg = self._config
        size = max(size, cfg.base_position_size // 2)
        size = min(size, cfg.max_position_size)
        daily_cap = _floor(Decimal(baseline_size) * _dec(cfg.max_daily_growth))
        return min(size, daily_cap)

    def _bounded(self, state: PositionState) -> PositionState:
        """``state`` with baseline and size pulled back inside the current limits."""
        cfg = self._config
        baseline = min(state.baseline_size, cfg.max_position_size)
        baseline = max(baseline, cfg.base_position_size // 2)
        size = self._clamp(state.size, baseline)
        if size == state.size and baseline == state.baseline_size:
            return state
        return state.model_copy(update={"size": size, "baseline_size": baseline})

    def _growth_factor(self, profit_pct: float) -> Decimal:
        growth = _dec(self._config.growth_factor)
        if not self._config.use_profit_based_scaling:
            return growth
        return Decimal(1) + (growth - Decimal(1)) * (Decimal(1) + _dec(profit_pct))

    # ── Public API ───────────────────────────────────────────────

    def get_size(self, pair: TokenPair) -> int:
        """Current position size for ``pair``."""
        with self._locked():
            return self._state(pair, self._clock()).size

    def state(self, pair: TokenPair) -> PositionState:
        """Copy of the pair's state (initializing it if needed)."""
        with self._locked():
            return self._state(pair, self._clock()).model_copy()

    def update(
        self,
        pair: TokenPair,
        success: bool,
        profit_pct: float = 0.0,
        profit_amount: int = 0,
        execution_time_ms: float = 0.0,
    ) -> int:
        """Apply a trade outcome to ``pair`` and return the new size.

        Args:
            pair: Traded pair.
            success: Whether the atomic unit landed.
            profit_pct: Realized profit as a fraction of trade size (0.006 = 0.6 %).
            profit_amount: Realized profit in quote base units, for history.
            execution_time_ms: Execution latency, for history.
        """
        with self._locked():
            now = self._clock()
            state = self._state(pair, now)
            current = state.size

            if success:
                factor = self._growth_factor(profit_pct)
            else:
                factor = _dec(self._config.reduction_factor)

            new_size = self._clamp(_floor(Decimal(current) * factor), state.baseline_size)
            self._states[pair] = state.model_copy(update={"size": new_size})

            self._history.append(TradeRecord(
                pair=pair,
                position_size=current,
                profit_amount=profit_amount,
                profit_pct=profit_pct,
                execution_time_ms=execution_time_ms,
                success=success,
                timestamp=now,
            ))
            if len(self._history) > self._config.history_capacity:
                del self._history[: self._config.history_evict]

        logger.debug(
            "position_size_updated",
            pair=pair.key,
            success=success,
            old_size=current,
            new_size=new_size,
        )
        return new_size

    def adjust_for_market(
        self,
        pair: TokenPair,
        volatility: VolatilityLevel,
        liquidity_score: int,
        trend_direction: int,
    ) -> int:
        """Size for ``pair`` scaled to the market regime. Does not store anything.

        ``liquidity_score`` is in [0, 100]; ``trend_direction`` in [-100, 100].
        """
        liquidity_score = max(0, min(100, liquidity_score))
        trend_direction = max(-100, min(100, trend_direction))

        with self._locked():
            state = self._effective_state(pair, self._clock())
            if not self._config.use_adaptive_sizing:
                return state.size
            adjusted = (
                Decimal(state.size)
                * _VOLATILITY_FACTORS[volatility]
                * (Decimal(liquidity_score) / Decimal(100))
                * trend_factor(trend_direction)
            )
            return self._clamp(_floor(adjusted), state.baseline_size)

    def size_for(self, pair: TokenPair, condition: MarketCondition | None = None) -> int:
        """Current size, market-adjusted when ``condition`` is known."""
        if condition is None:
            return self.get_size(pair)
        return self.adjust_for_market(
            pair,
            condition.volatility,
            condition.liquidity_score,
            condition.trend_direction,
        )

    @property
    def history(self) -> list[TradeRecord]:
        with self._locked():
            return list(self._history)

    def performance_stats(self) -> PerformanceStatistics:
        """Aggregate statistics over the bounded trade history."""
        with self._locked():
            history = list(self._history)

        if not history:
            return PerformanceStatistics()

        total = len(history)
        successes = sum(1 for r in history if r.success)
        return PerformanceStatistics(
            total_trades=total,
            successful_trades=successes,
            success_rate=successes / total * 100.0,
            total_profit=sum(r.profit_amount for r in history),
            avg_profit_pct=sum(r.profit_pct for r in history) / total,
            avg_execution_time_ms=sum(r.execution_time_ms for r in history) / total,
        )

    def update_config(self, config: SizingConfig) -> None:
        """Swap sizing parameters and re-clamp every stored size to them."""
        with self._locked():
            self._config = config
            self._states = {pair: self._bounded(s) for pair, s in self._states.items()}
        logger.info("sizing_config_updated", risk_level=config.risk_level)

    def snapshot(self) -> dict[str, PositionState]:
        """Serializable copy of all per-pair state, keyed by ``base/quote``."""
        with self._locked():
            return {pair.key: s.model_copy() for pair, s in self._states.items()}

    def restore(self, states: dict[str, PositionState]) -> None:
        """Replace per-pair state from a snapshot, clamped to the current limits."""
        with self._locked():
            self._states = {
                TokenPair.from_key(key): self._bounded(s.model_copy())
                for key, s in states.items()
            }
        logger.info("position_state_restored", pairs=len(states))
