"""
String key-value stores with the semantics of browser web storage.

Two backends share the :class:`KeyValueStorage` protocol:

- :class:`MemoryStorage`   : process-local, forgotten on exit (session scope).
- :class:`JsonFileStorage` : one JSON object on disk per device profile; every
  write replaces the file atomically so a crash never leaves half a document.

Both raise :class:`StorageUnavailable` instead of leaking ``OSError`` or JSON
errors, so callers can degrade to empty collections.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from castimeline.core.errors import StorageUnavailable


class KeyValueStorage(Protocol):
    """Minimal web-storage surface used by the timeline."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dictionary-backed storage (session scope)."""

    __slots__ = ("_data",)

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> tuple[str, ...]:
        """Return the current keys as a sorted tuple (stable for tests)."""
        return tuple(sorted(self._data))


class JsonFileStorage:
    """Durable storage persisted as a single JSON object.

    The file is read once, lazily, and every mutation is written through.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._cache: dict[str, str] | None = None

    # ------------------------------- internals ------------------------------

    def _load(self) -> dict[str, str]:
        if self._cache is not None:
            return self._cache
        if not self.path.exists():
            self._cache = {}
            return self._cache
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageUnavailable(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StorageUnavailable(f"{self.path} does not hold a JSON object")
        self._cache = {str(k): str(v) for k, v in raw.items()}
        return self._cache

    def _flush(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".kv-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.write("\n")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write {self.path}: {exc}") from exc

    # ------------------------------- KV API ---------------------------------

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = dict(self._load())
        data[key] = str(value)
        self._flush(data)
        self._cache = data

    def remove_item(self, key: str) -> None:
        data = dict(self._load())
        if data.pop(key, None) is not None:
            self._flush(data)
            self._cache = data


__all__ = ["JsonFileStorage", "KeyValueStorage", "MemoryStorage"]
