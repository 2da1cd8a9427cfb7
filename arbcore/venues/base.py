"""Contracts for the external collaborators the engine consumes."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from arbcore.core.types import (
    ArbitrageOpportunity,
    Instruction,
    PriceQuote,
    Settlement,
    Venue,
    WalletRole,
)


@runtime_checkable
class PriceOracleAdapter(Protocol):
    """Current price and available liquidity for a pair at a venue.

    Implementations raise ``RpcError`` for transport failures and
    ``ProviderError`` when the venue rejects or garbles the request.
    """

    async def quote(self, venue: Venue, base: str, quote: str) -> PriceQuote: ...


@runtime_checkable
class SignerService(Protocol):
    """Signs and broadcasts an instruction set as one all-or-nothing unit.

    Returns a transaction reference. Raises ``TransactionError`` when the
    unit is rejected or reverted.
    """

    async def submit_atomic(
        self,
        instructions: list[Instruction],
        required_signers: list[str],
    ) -> str: ...


@runtime_checkable
class WalletDirectory(Protocol):
    """Lookup of wallet addresses by role and their token balances."""

    def wallets_by_role(self, role: WalletRole) -> list[str]: ...

    async def balance(self, address: str, token: str) -> int: ...


@runtime_checkable
class SettlementService(Protocol):
    """Confirms a submitted unit on-chain and reports realized profit."""

    async def confirm(
        self,
        tx_reference: str,
        opportunity: ArbitrageOpportunity,
    ) -> Settlement: ...
