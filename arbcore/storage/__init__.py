"""State persistence — contract, JSON file store, in-memory store."""

from arbcore.storage.base import PersistedState, StateStore
from arbcore.storage.json_store import JsonStateStore
from arbcore.storage.memory_store import MemoryStateStore

__all__ = [
    "JsonStateStore",
    "MemoryStateStore",
    "PersistedState",
    "StateStore",
]
