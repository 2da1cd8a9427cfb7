"""Closed registry of flash-loan providers and their borrow/repay instructions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from arbcore.core.types import Instruction, LoanProvider

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of a flash-loan provider."""

    provider: LoanProvider
    program_id: str
    fee_pct: Decimal
    borrow_discriminator: int
    repay_discriminator: int

    def build_borrow(
        self,
        amount: int,
        token: str,
        borrower: str,
        program_id: str | None = None,
    ) -> Instruction:
        return Instruction(
            program_id=program_id or self.program_id,
            kind="borrow",
            source=self.provider.value,
            accounts=[borrower, borrower, token, SYSTEM_PROGRAM_ID],
            signers=[borrower],
            params={"discriminator": self.borrow_discriminator, "amount": amount},
        )

    def build_repay(
        self,
        amount: int,
        token: str,
        borrower: str,
        program_id: str | None = None,
    ) -> Instruction:
        return Instruction(
            program_id=program_id or self.program_id,
            kind="repay",
            source=self.provider.value,
            accounts=[borrower, token, SYSTEM_PROGRAM_ID],
            signers=[borrower],
            params={"discriminator": self.repay_discriminator, "amount": amount},
        )


PROVIDER_SPECS: dict[LoanProvider, ProviderSpec] = {
    LoanProvider.SOLEND: ProviderSpec(
        provider=LoanProvider.SOLEND,
        program_id="So1endDq2YkqhipRh3WViPa8hdiSpxWy6z3Z6tMCpAo",
        fee_pct=Decimal("0.3"),
        borrow_discriminator=12,
        repay_discriminator=13,
    ),
    LoanProvider.FLASH_PROTOCOL: ProviderSpec(
        provider=LoanProvider.FLASH_PROTOCOL,
        program_id="F1ashzfw6VFQtGR3EgqmmSEnBZCR4ZvK6LaiAz5oxUg",
        fee_pct=Decimal("0.2"),
        borrow_discriminator=1,
        repay_discriminator=2,
    ),
    LoanProvider.FLASH_LOAN_MASTERY: ProviderSpec(
        provider=LoanProvider.FLASH_LOAN_MASTERY,
        program_id="F1ashMa5t3ryXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX",
        fee_pct=Decimal("0.25"),
        borrow_discriminator=5,
        repay_discriminator=6,
    ),
}
