"""LoanOrchestrator — fee quoting and the borrow/repay bracket around trade legs."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

import structlog

from arbcore.core.config import LoanConfig, get_settings
from arbcore.core.exceptions import ParameterError
from arbcore.core.types import Instruction, LoanQuote
from arbcore.loans.providers import PROVIDER_SPECS, ProviderSpec

logger = structlog.stdlib.get_logger()


class LoanOrchestrator:
    """Wraps caller-supplied trade legs in a single-transaction loan.

    The provider is fixed by configuration. The bracket is only valid
    inside one atomic submission: if any leg fails the borrow is undone.
    """

    def __init__(self, config: LoanConfig | None = None) -> None:
        self._config = config or get_settings().loan

    @property
    def config(self) -> LoanConfig:
        return self._config

    @property
    def spec(self) -> ProviderSpec:
        return PROVIDER_SPECS[self._config.provider]

    @property
    def program_id(self) -> str:
        return self._config.program_id or self.spec.program_id

    @property
    def fee_pct(self) -> Decimal:
        if self._config.fee_pct is not None:
            return self._config.fee_pct
        return self.spec.fee_pct

    def update_config(self, config: LoanConfig) -> None:
        self._config = config

    def fee(self, amount: int) -> int:
        """Loan fee: ``floor(amount * fee_pct / 100)``."""
        raw = Decimal(amount) * self.fee_pct / Decimal(100)
        return int(raw.to_integral_value(rounding=ROUND_DOWN))

    def quote(self, amount: int) -> LoanQuote:
        """Validate ``amount`` against provider limits and price the loan.

        Raises:
            ParameterError: amount is not positive or exceeds the provider maximum.
        """
        if amount <= 0:
            raise ParameterError(f"Loan amount must be positive, got {amount}")
        if amount > self._config.max_loan_amount:
            raise ParameterError(
                f"Loan amount {amount} exceeds maximum {self._config.max_loan_amount}"
            )
        return LoanQuote(
            provider=self._config.provider,
            program_id=self.program_id,
            amount=amount,
            fee=self.fee(amount),
        )

    def build_bracket(
        self,
        amount: int,
        trade_legs: list[Instruction],
        token: str,
        borrower: str,
    ) -> list[Instruction]:
        """Return ``[borrow(amount), *trade_legs, repay(amount + fee)]``."""
        if not trade_legs:
            raise ParameterError("A loan bracket needs at least one trade leg")
        loan = self.quote(amount)
        spec = self.spec
        borrow = spec.build_borrow(amount, token, borrower, self.program_id)
        repay = spec.build_repay(loan.repay_amount, token, borrower, self.program_id)
        logger.debug(
            "loan_bracket_built",
            provider=loan.provider,
            amount=amount,
            fee=loan.fee,
            legs=len(trade_legs),
        )
        return [borrow, *trade_legs, repay]
