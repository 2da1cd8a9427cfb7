"""In-process state store."""

from __future__ import annotations

from arbcore.storage.base import PersistedState


class MemoryStateStore:
    """Keeps the last saved state in memory. Counts saves for inspection."""

    def __init__(self, initial: PersistedState | None = None) -> None:
        self._state = initial.model_copy(deep=True) if initial is not None else None
        self.save_count = 0

    def load(self) -> PersistedState | None:
        if self._state is None:
            return None
        return self._state.model_copy(deep=True)

    def save(self, state: PersistedState) -> None:
        self._state = state.model_copy(deep=True)
        self.save_count += 1
