"""Paper signer — accepts atomic submissions without touching a chain.

Validates the instruction set the way an atomic runtime would refuse it
(unsigned, empty, or an unbalanced loan bracket) and supports a
configurable, deterministic rejection rate for dry runs.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from dataclasses import dataclass, field

import structlog

from arbcore.core.exceptions import TransactionError
from arbcore.core.types import Instruction

logger = structlog.stdlib.get_logger()


@dataclass
class SubmissionRecord:
    """Record of one simulated submission for post-hoc analysis."""

    tx_reference: str
    instructions: list[Instruction]
    required_signers: list[str]
    accepted: bool
    timestamp: float
    error: str = ""
    loan_principal: int = 0
    loan_repay: int = 0
    legs: int = field(default=0)


def check_bracket(instructions: list[Instruction]) -> tuple[int, int]:
    """Validate loan bracket shape and return (principal, repay amount).

    A bracket is either absent or exactly one leading ``borrow`` and one
    trailing ``repay`` of at least the principal, on the same program.
    """
    borrows = [i for i in instructions if i.kind == "borrow"]
    repays = [i for i in instructions if i.kind == "repay"]
    if not borrows and not repays:
        return 0, 0
    if len(borrows) != 1 or len(repays) != 1:
        raise TransactionError(
            f"Unbalanced loan bracket: {len(borrows)} borrow / {len(repays)} repay"
        )
    borrow, repay = borrows[0], repays[0]
    if instructions[0] is not borrow or instructions[-1] is not repay:
        raise TransactionError("Loan bracket must open with borrow and close with repay")
    if borrow.program_id != repay.program_id:
        raise TransactionError("Borrow and repay target different loan programs")
    principal = int(borrow.params.get("amount", 0))
    repay_amount = int(repay.params.get("amount", 0))
    if repay_amount < principal:
        raise TransactionError(
            f"Repay amount {repay_amount} is below borrowed principal {principal}"
        )
    return principal, repay_amount


class PaperSigner:
    """Drop-in ``SignerService`` for dry runs and tests.

    Usage::

        signer = PaperSigner(reject_probability=0.1)
        tx = await signer.submit_atomic(instructions, [wallet])
    """

    def __init__(self, reject_probability: float = 0.0, latency_ms: int = 0) -> None:
        self._reject_probability = reject_probability
        self._latency = latency_ms / 1000.0
        self._submissions: list[SubmissionRecord] = []
        self._counter = 0

    @property
    def submissions(self) -> list[SubmissionRecord]:
        """All simulated submissions (for analysis)."""
        return list(self._submissions)

    def _rejected(self, tx_reference: str) -> bool:
        if self._reject_probability <= 0.0:
            return False
        # Deterministic from the reference so runs are reproducible
        seed = hashlib.md5(tx_reference.encode()).hexdigest()
        return int(seed[:8], 16) / 0xFFFFFFFF < self._reject_probability

    async def submit_atomic(
        self,
        instructions: list[Instruction],
        required_signers: list[str],
    ) -> str:
        self._counter += 1
        tx_reference = f"paper_{self._counter}"
        now = time.time()

        if self._latency:
            await asyncio.sleep(self._latency)

        record = SubmissionRecord(
            tx_reference=tx_reference,
            instructions=list(instructions),
            required_signers=list(required_signers),
            accepted=False,
            timestamp=now,
            legs=sum(1 for i in instructions if i.kind == "swap"),
        )
        self._submissions.append(record)

        if not instructions:
            record.error = "empty instruction set"
            raise TransactionError("Refusing to submit an empty instruction set")
        if not required_signers:
            record.error = "no signers"
            raise TransactionError("Atomic submission requires at least one signer")
        try:
            record.loan_principal, record.loan_repay = check_bracket(instructions)
        except TransactionError as exc:
            record.error = str(exc)
            raise

        if self._rejected(tx_reference):
            record.error = "simulated rejection"
            logger.info("paper_submission_rejected", tx_reference=tx_reference)
            raise TransactionError(f"Simulated rejection of {tx_reference}")

        record.accepted = True
        logger.info(
            "paper_submission_accepted",
            tx_reference=tx_reference,
            instructions=len(instructions),
            loan_principal=record.loan_principal,
        )
        return tx_reference
