"""Tests for LoanOrchestrator — fee math, limits, bracket ordering."""

from __future__ import annotations

from decimal import Decimal

import pytest

from arbcore.core.config import LoanConfig
from arbcore.core.exceptions import ParameterError
from arbcore.core.types import Instruction, LoanProvider
from arbcore.loans.orchestrator import LoanOrchestrator
from arbcore.loans.providers import PROVIDER_SPECS


def _cfg(**overrides: object) -> LoanConfig:
    defaults: dict[str, object] = {
        "provider": LoanProvider.SOLEND,
        "max_loan_amount": 10_000_000_000,
    }
    defaults.update(overrides)
    return LoanConfig(**defaults)  # type: ignore[arg-type]


def _leg(name: str) -> Instruction:
    return Instruction(program_id="venue", kind="swap", source=name)


class TestProviders:
    def test_every_provider_registered(self) -> None:
        assert set(PROVIDER_SPECS) == set(LoanProvider)

    def test_published_fees(self) -> None:
        assert PROVIDER_SPECS[LoanProvider.SOLEND].fee_pct == Decimal("0.3")
        assert PROVIDER_SPECS[LoanProvider.FLASH_PROTOCOL].fee_pct == Decimal("0.2")
        assert PROVIDER_SPECS[LoanProvider.FLASH_LOAN_MASTERY].fee_pct == Decimal("0.25")


class TestFee:
    def test_provider_default_fee(self) -> None:
        orch = LoanOrchestrator(_cfg())
        assert orch.fee(1_000_000) == 3_000

    def test_fee_is_floored(self) -> None:
        orch = LoanOrchestrator(_cfg())
        # 999 * 0.3 / 100 = 2.997
        assert orch.fee(999) == 2

    def test_fee_override(self) -> None:
        orch = LoanOrchestrator(_cfg(fee_pct=Decimal("0.09")))
        assert orch.fee(1_000_000) == 900

    def test_update_config_switches_provider(self) -> None:
        orch = LoanOrchestrator(_cfg())
        orch.update_config(_cfg(provider=LoanProvider.FLASH_PROTOCOL))
        assert orch.fee(1_000_000) == 2_000
        assert orch.program_id == PROVIDER_SPECS[LoanProvider.FLASH_PROTOCOL].program_id


class TestQuote:
    def test_quote_fields(self) -> None:
        orch = LoanOrchestrator(_cfg())
        q = orch.quote(1_000_000)
        assert q.provider == LoanProvider.SOLEND
        assert q.amount == 1_000_000
        assert q.fee == 3_000
        assert q.repay_amount == 1_003_000

    def test_above_maximum_rejected(self) -> None:
        orch = LoanOrchestrator(_cfg(max_loan_amount=1_000))
        with pytest.raises(ParameterError, match="exceeds maximum"):
            orch.quote(1_001)

    def test_at_maximum_accepted(self) -> None:
        orch = LoanOrchestrator(_cfg(max_loan_amount=1_000))
        assert orch.quote(1_000).amount == 1_000

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_rejected(self, amount: int) -> None:
        with pytest.raises(ParameterError):
            LoanOrchestrator(_cfg()).quote(amount)


class TestBracket:
    def test_order_borrow_legs_repay(self) -> None:
        orch = LoanOrchestrator(_cfg())
        ixs = orch.build_bracket(1_000_000, [_leg("a"), _leg("b")], "USDC", "wallet")

        assert [ix.kind for ix in ixs] == ["borrow", "swap", "swap", "repay"]
        assert [ix.source for ix in ixs[1:3]] == ["a", "b"]
        assert ixs[0].params["amount"] == 1_000_000
        assert ixs[-1].params["amount"] == 1_003_000
        assert ixs[0].program_id == ixs[-1].program_id == orch.program_id

    def test_custom_program_id(self) -> None:
        orch = LoanOrchestrator(_cfg(program_id="custom"))
        ixs = orch.build_bracket(10, [_leg("a")], "USDC", "wallet")
        assert ixs[0].program_id == "custom"
        assert ixs[-1].program_id == "custom"

    def test_empty_legs_rejected(self) -> None:
        with pytest.raises(ParameterError):
            LoanOrchestrator(_cfg()).build_bracket(10, [], "USDC", "wallet")

    def test_oversized_bracket_rejected_before_building(self) -> None:
        orch = LoanOrchestrator(_cfg(max_loan_amount=100))
        with pytest.raises(ParameterError):
            orch.build_bracket(101, [_leg("a")], "USDC", "wallet")
