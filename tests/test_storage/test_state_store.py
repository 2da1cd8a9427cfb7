"""Tests for JSON and in-memory state stores."""

from __future__ import annotations

from pathlib import Path

import pytest

from arbcore.accounting.ledger import LedgerSnapshot
from arbcore.core.exceptions import StorageError
from arbcore.core.types import PositionState, ProfitAccount
from arbcore.storage.base import PersistedState, StateStore
from arbcore.storage.json_store import JsonStateStore
from arbcore.storage.memory_store import MemoryStateStore


def _state() -> PersistedState:
    return PersistedState(
        positions={
            "SOL/USDC": PositionState(size=105, baseline_size=100, baseline_at=12.5),
        },
        ledger=LedgerSnapshot(
            accounts={
                "USDC": ProfitAccount(token="USDC", total_profit=7, undistributed_profit=7),
            },
            total_usd_profit=7,
        ),
        saved_at=99.0,
    )


class TestJsonStateStore:
    def test_satisfies_protocol(self, tmp_path: Path) -> None:
        assert isinstance(JsonStateStore(tmp_path / "s.json"), StateStore)

    def test_load_missing_returns_none(self, tmp_path: Path) -> None:
        assert JsonStateStore(tmp_path / "missing.json").load() is None

    def test_save_then_load(self, tmp_path: Path) -> None:
        store = JsonStateStore(tmp_path / "nested" / "state.json")
        store.save(_state())
        assert store.load() == _state()

    def test_no_temp_file_left_behind(self, tmp_path: Path) -> None:
        store = JsonStateStore(tmp_path / "state.json")
        store.save(_state())
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_save_overwrites(self, tmp_path: Path) -> None:
        store = JsonStateStore(tmp_path / "state.json")
        store.save(_state())
        store.save(PersistedState(saved_at=1.0))
        loaded = store.load()
        assert loaded is not None
        assert loaded.positions == {}

    def test_corrupted_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(StorageError, match="Corrupted"):
            JsonStateStore(path).load()


class TestMemoryStateStore:
    def test_roundtrip_and_isolation(self) -> None:
        store = MemoryStateStore()
        assert store.load() is None

        state = _state()
        store.save(state)
        state.positions.clear()

        loaded = store.load()
        assert loaded is not None
        assert "SOL/USDC" in loaded.positions
        assert store.save_count == 1
