"""Profit accounting."""

from arbcore.accounting.ledger import LedgerSnapshot, ProfitLedger, split_amount

__all__ = [
    "LedgerSnapshot",
    "ProfitLedger",
    "split_amount",
]
