"""Persistence port for the portfolio store and its local implementations.

The store hands over a full JSON-serializable snapshot after every mutation
and reads it back once at startup. Implementations only move whole
snapshots; they never see partial updates.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Protocol

STORAGE_KEY = "portfolio-storage"
LOGGER = logging.getLogger(__name__)


class PersistencePort(Protocol):
    def load(self) -> dict[str, Any] | None: ...
    def save(self, snapshot: dict[str, Any]) -> None: ...


class InMemoryStorage:
    def __init__(self, snapshot: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        if snapshot is not None:
            self.save(snapshot)

    def load(self) -> dict[str, Any] | None:
        raw = self._data.get(STORAGE_KEY)
        return json.loads(raw) if raw is not None else None

    def save(self, snapshot: dict[str, Any]) -> None:
        self._data[STORAGE_KEY] = json.dumps(snapshot)


class JsonFileStorage:
    """Key-value JSON file; the snapshot lives under ``key``.

    Writes go to a temp file in the same directory and are swapped in with
    ``os.replace`` so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: str, key: str = STORAGE_KEY) -> None:
        self.path = os.path.abspath(os.path.expanduser(path))
        self.key = key

    def _read_all(self) -> dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self.path} does not hold a JSON object.")
        return data

    def load(self) -> dict[str, Any] | None:
        value = self._read_all().get(self.key)
        return value if isinstance(value, dict) else None

    def save(self, snapshot: dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        try:
            data = self._read_all()
        except (OSError, ValueError):
            LOGGER.warning("storage file unreadable, overwriting: path=%s", self.path)
            data = {}
        data[self.key] = snapshot
        fd, tmp_path = tempfile.mkstemp(prefix=".storage-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=True, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
