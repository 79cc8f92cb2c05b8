"""Key-value storage used in place of browser local and session storage."""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

log = logging.getLogger("uxr.storage")


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temporary file and rename."""
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


class KeyValueStorage(ABC):
    """String-to-string store with the semantics of ``window.localStorage``."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under ``key`` or ``None``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""

    def clear(self) -> None:
        for key in self.keys():
            self.remove(key)


class MemoryStorage(KeyValueStorage):
    """Process-local storage, used for session data and in tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()


class JSONFileStorage(KeyValueStorage):
    """Persist key-value pairs to a single JSON file.

    The storage is intentionally lightweight. Data is persisted to a single
    JSON file on every mutation which keeps the implementation simple while
    providing durability across process restarts. A corrupt file is logged
    and treated as empty.
    """

    def __init__(self, path: Path) -> None:
        """Initialise storage using JSON file at ``path``."""
        self.path = Path(path)
        self._data: dict[str, str] = {}
        if self.path.exists():
            self._load()
        else:
            self._save()

    # ------------------------------------------------------------------
    # Internal helpers
    def _load(self) -> None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            log.warning("Storage file %s is unreadable, starting empty", self.path)
            return
        if not isinstance(data, dict):
            log.warning("Storage file %s does not hold an object, starting empty", self.path)
            return
        self._data = {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        atomic_write_text(self.path, json.dumps(self._data, indent=2, ensure_ascii=False))

    # ------------------------------------------------------------------
    # Key-value operations
    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data = {}
        self._save()
