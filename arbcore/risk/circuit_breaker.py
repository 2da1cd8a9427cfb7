"""CircuitBreaker — trading halt driven by rolling execution outcomes."""

from __future__ import annotations

import time
from collections import deque

import structlog

from arbcore.core.config import CircuitBreakerConfig
from arbcore.core.types import BreakerState, BreakerTrigger

logger = structlog.stdlib.get_logger()


class CircuitBreaker:
    """Halts trading after a failure streak or a high rolling error rate.

    Once tripped, the breaker stays tripped until ``reset()``. Results
    recorded while tripped are ignored.
    """

    def __init__(self, config: CircuitBreakerConfig | None = None) -> None:
        self._config = config or CircuitBreakerConfig()
        self._state = BreakerState()
        self._consecutive_failures: int = 0
        self._recent_results: deque[bool] = deque(maxlen=self._config.error_window)

    # ── Properties ────────────────────────────────────────────────

    @property
    def tripped(self) -> bool:
        """Whether trading is currently halted."""
        return self._config.enabled and self._state.tripped

    @property
    def state(self) -> BreakerState:
        """Read-only copy of the current breaker state."""
        return self._state.model_copy()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def error_rate(self) -> float:
        """Failure percentage over the rolling window."""
        if not self._recent_results:
            return 0.0
        failures = sum(1 for r in self._recent_results if not r)
        return (failures / len(self._recent_results)) * 100.0

    # ── Trigger checks (pure) ────────────────────────────────────

    def check_consecutive_failures(self) -> bool:
        return self._consecutive_failures >= self._config.max_consecutive_failures

    def check_error_rate(self) -> bool:
        """True once the window is full and its failure rate hits the threshold."""
        if len(self._recent_results) < self._config.error_window:
            return False
        return self.error_rate >= self._config.max_error_rate_pct

    # ── State mutation ───────────────────────────────────────────

    def trip(self, reason: str, trigger: BreakerTrigger = BreakerTrigger.MANUAL) -> None:
        """Halt trading."""
        self._state = BreakerState(
            tripped=True,
            trigger=trigger,
            tripped_at=time.time(),
            reason=reason,
        )
        logger.warning("circuit_breaker_tripped", trigger=trigger, reason=reason)

    def reset(self) -> None:
        """Clear the halt and all counters."""
        self._state = BreakerState()
        self._consecutive_failures = 0
        self._recent_results.clear()
        logger.info("circuit_breaker_reset")

    def update_config(self, config: CircuitBreakerConfig) -> None:
        self._config = config
        self._recent_results = deque(self._recent_results, maxlen=config.error_window)

    def record_result(self, success: bool) -> BreakerTrigger | None:
        """Record an execution outcome.

        Returns the trigger if this result tripped the breaker, else None.
        """
        if not self._config.enabled or self._state.tripped:
            return None

        self._recent_results.append(success)
        if success:
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1

        if self.check_consecutive_failures():
            trigger = BreakerTrigger.CONSECUTIVE_FAILURES
            self.trip(f"{self._consecutive_failures} consecutive failures", trigger)
            return trigger

        if self.check_error_rate():
            trigger = BreakerTrigger.ERROR_RATE
            self.trip(
                f"Error rate {self.error_rate:.1f}% exceeds"
                f" {self._config.max_error_rate_pct}% threshold",
                trigger,
            )
            return trigger

        return None
