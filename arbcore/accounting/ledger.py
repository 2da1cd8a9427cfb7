"""ProfitLedger — per-token profit accounting and reinvest/withdraw/reserve splits."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from pydantic import BaseModel

from arbcore.core.config import DistributionConfig, get_settings
from arbcore.core.exceptions import ParameterError, StateLockError
from arbcore.core.types import (
    DistributionResult,
    ProfitAccount,
    ProfitStatistics,
    TokenDistribution,
)

logger = structlog.stdlib.get_logger()


class LedgerSnapshot(BaseModel):
    """Serializable ledger contents."""

    accounts: dict[str, ProfitAccount] = {}
    total_sol_profit: int = 0
    total_usd_profit: int = 0


def split_amount(amount: int, config: DistributionConfig) -> tuple[int, int, int]:
    """Split ``amount`` into (reinvest, withdraw, reserve).

    Integer percentages, truncated; reserve takes the remainder so the
    three parts always add up to ``amount``.
    """
    reinvest = amount * config.reinvest_pct // 100
    withdraw = amount * config.withdraw_pct // 100
    reserve = amount - reinvest - withdraw
    return reinvest, withdraw, reserve


class ProfitLedger:
    """Accumulates realized profit per token and distributes it.

    Totals only grow. ``undistributed_profit`` rises on ``record_profit``
    and drops to zero for every token that qualifies in
    ``distribute_profits``. All operations hold one lock acquired with a
    timeout; on timeout ``StateLockError`` is raised and the ledger is
    unchanged.
    """

    def __init__(
        self,
        config: DistributionConfig | None = None,
        lock_timeout_secs: float = 1.0,
    ) -> None:
        self._config = config or get_settings().distribution
        self._lock_timeout = lock_timeout_secs
        self._lock = threading.Lock()
        self._accounts: dict[str, ProfitAccount] = {}
        self._total_sol_profit: int = 0
        self._total_usd_profit: int = 0

    @property
    def config(self) -> DistributionConfig:
        return self._config

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise StateLockError("Timed out waiting for profit ledger state")
        try:
            yield
        finally:
            self._lock.release()

    def _account(self, token: str) -> ProfitAccount:
        account = self._accounts.get(token)
        if account is None:
            account = ProfitAccount(token=token)
            self._accounts[token] = account
        return account

    # ── Recording ────────────────────────────────────────────────

    def record_profit(
        self,
        token: str,
        amount: int,
        sol_value: int = 0,
        usd_value: int = 0,
    ) -> None:
        """Credit a successful trade's realized profit to ``token``."""
        if amount < 0 or sol_value < 0 or usd_value < 0:
            raise ParameterError(
                f"Profit amounts must be non-negative, got {amount}/{sol_value}/{usd_value}"
            )
        with self._locked():
            account = self._account(token)
            account.total_profit += amount
            account.undistributed_profit += amount
            account.successful_trades += 1
            self._total_sol_profit += sol_value
            self._total_usd_profit += usd_value
        logger.debug("profit_recorded", token=token, amount=amount)

    def record_unsettled(self, token: str) -> None:
        """Count a landed trade whose realized profit was never reported."""
        with self._locked():
            self._account(token).unsettled_trades += 1

    def record_failed_trade(self, token: str) -> None:
        with self._locked():
            self._account(token).failed_trades += 1

    # ── Distribution ─────────────────────────────────────────────

    def distribute_profits(self) -> DistributionResult:
        """Split every token's undistributed balance that meets the minimum.

        Tokens below ``min_distribution_amount`` are left untouched.
        """
        with self._locked():
            config = self._config
            result = DistributionResult(owner_wallet=config.owner_wallet)
            for token, account in self._accounts.items():
                amount = account.undistributed_profit
                if amount <= 0 or amount < config.min_distribution_amount:
                    continue

                reinvest, withdraw, reserve = split_amount(amount, config)
                account.distributed_profit += amount
                account.undistributed_profit = 0

                result.reinvested += reinvest
                result.withdrawn += withdraw
                result.reserved += reserve
                result.distributed += amount
                result.per_token.append(TokenDistribution(
                    token=token,
                    distributed=amount,
                    reinvested=reinvest,
                    withdrawn=withdraw,
                    reserved=reserve,
                ))

        if result.distributed:
            logger.info(
                "profits_distributed",
                tokens=len(result.per_token),
                distributed=result.distributed,
                reinvested=result.reinvested,
                withdrawn=result.withdrawn,
                reserved=result.reserved,
            )
        return result

    # ── Queries ──────────────────────────────────────────────────

    def account(self, token: str) -> ProfitAccount | None:
        """Copy of the ledger entry for ``token``, if any."""
        with self._locked():
            account = self._accounts.get(token)
            return account.model_copy() if account is not None else None

    def get_statistics(self) -> ProfitStatistics:
        with self._locked():
            successes = sum(a.successful_trades for a in self._accounts.values())
            failures = sum(a.failed_trades for a in self._accounts.values())
            trades = successes + failures
            return ProfitStatistics(
                total_sol_profit=self._total_sol_profit,
                total_usd_profit=self._total_usd_profit,
                total_successful_trades=successes,
                total_failed_trades=failures,
                overall_success_rate=successes / trades * 100.0 if trades else 0.0,
                token_count=len(self._accounts),
            )

    def update_config(self, config: DistributionConfig) -> None:
        with self._locked():
            self._config = config
        logger.info(
            "distribution_config_updated",
            reinvest_pct=config.reinvest_pct,
            withdraw_pct=config.withdraw_pct,
            reserve_pct=config.reserve_pct,
        )

    # ── Persistence ──────────────────────────────────────────────

    def snapshot(self) -> LedgerSnapshot:
        with self._locked():
            return LedgerSnapshot(
                accounts={t: a.model_copy() for t, a in self._accounts.items()},
                total_sol_profit=self._total_sol_profit,
                total_usd_profit=self._total_usd_profit,
            )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        with self._locked():
            self._accounts = {t: a.model_copy() for t, a in snapshot.accounts.items()}
            self._total_sol_profit = snapshot.total_sol_profit
            self._total_usd_profit = snapshot.total_usd_profit
        logger.info("ledger_restored", tokens=len(snapshot.accounts))
