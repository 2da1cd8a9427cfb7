"""Persisted-state model and the storage contract."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from arbcore.accounting.ledger import LedgerSnapshot
from arbcore.core.types import PositionState


class PersistedState(BaseModel):
    """Everything that must survive a restart: sizer positions and the ledger."""

    version: int = 1
    positions: dict[str, PositionState] = {}
    ledger: LedgerSnapshot = LedgerSnapshot()
    saved_at: float = 0.0


@runtime_checkable
class StateStore(Protocol):
    """Load/save contract for persisted state.

    ``load`` returns None when nothing was saved yet. Both raise
    ``StorageError`` on I/O or decoding failures.
    """

    def load(self) -> PersistedState | None: ...

    def save(self, state: PersistedState) -> None: ...
