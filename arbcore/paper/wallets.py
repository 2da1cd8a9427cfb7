"""Wallet directory served from static configuration."""

from __future__ import annotations

from arbcore.core.config import PaperConfig
from arbcore.core.types import WalletRole


class StaticWalletDirectory:
    """``WalletDirectory`` backed by config dicts.

    Balances are keyed ``"<address>:<token>"`` or by bare token (any
    wallet). Unknown balances are zero.
    """

    def __init__(
        self,
        wallets: dict[WalletRole, list[str]] | None = None,
        balances: dict[str, int] | None = None,
    ) -> None:
        self._wallets = {role: list(addrs) for role, addrs in (wallets or {}).items()}
        self._balances = dict(balances or {})

    @classmethod
    def from_config(cls, config: PaperConfig) -> StaticWalletDirectory:
        return cls(wallets=config.wallets, balances=config.balances)

    def wallets_by_role(self, role: WalletRole) -> list[str]:
        return list(self._wallets.get(role, []))

    def set_balance(self, address: str, token: str, amount: int) -> None:
        self._balances[f"{address}:{token}"] = amount

    async def balance(self, address: str, token: str) -> int:
        exact = self._balances.get(f"{address}:{token}")
        if exact is not None:
            return exact
        return self._balances.get(token, 0)
