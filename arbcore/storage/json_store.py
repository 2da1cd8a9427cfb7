"""JSON file state store with atomic replace."""

from __future__ import annotations

import os
import threading
from pathlib import Path

import structlog
from pydantic import ValidationError

from arbcore.core.exceptions import StorageError
from arbcore.storage.base import PersistedState

logger = structlog.stdlib.get_logger()


class JsonStateStore:
    """Stores state as one pydantic JSON document.

    Writes go to ``<path>.tmp`` first and are swapped in with
    ``os.replace``, so a crash mid-write leaves the previous file intact.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PersistedState | None:
        if not self._path.exists():
            return None
        try:
            raw = self._path.read_text(encoding="utf-8")
            state = PersistedState.model_validate_json(raw)
        except OSError as exc:
            raise StorageError(f"Cannot read state file {self._path}: {exc}") from exc
        except ValidationError as exc:
            raise StorageError(f"Corrupted state file {self._path}: {exc}") from exc
        logger.info("state_loaded", path=str(self._path), positions=len(state.positions))
        return state

    def save(self, state: PersistedState) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        payload = state.model_dump_json(indent=2)
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(payload, encoding="utf-8")
                os.replace(tmp_path, self._path)
            except OSError as exc:
                raise StorageError(f"Cannot write state file {self._path}: {exc}") from exc
        logger.debug("state_saved", path=str(self._path))
