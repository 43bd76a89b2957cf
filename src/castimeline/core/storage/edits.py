"""
Local Edit Store: unpublished additions and deletion tombstones.

Two independent collections live in a durable key-value store under fixed
keys that other tooling reads:

- ``kcm.timeline.customItems``  : JSON list of author-created items.
- ``kcm.timeline.deletedItems`` : JSON list of tombstoned base-item ids.

Keys are written lazily on the first edit and both collections are wiped by
:meth:`LocalEditStore.clear` once a publish is confirmed, because the
authoritative dataset then carries every pending edit.

Storage problems never escape: unreadable entries load as empty collections
and failed writes are logged while the in-memory copy stays current.
"""

from __future__ import annotations

import json
from typing import Any, Final, Literal

from pydantic import ValidationError

from castimeline.core.contracts.item import TimelineItem
from castimeline.core.errors import StorageUnavailable
from castimeline.core.settings import get_logger

from .kv import KeyValueStorage

CUSTOM_STORAGE_KEY: Final = "kcm.timeline.customItems"
DELETED_STORAGE_KEY: Final = "kcm.timeline.deletedItems"

logger = get_logger("castimeline.storage.edits")

RemovalKind = Literal["custom", "tombstone"]


class LocalEditStore:
    """Per-device store of custom items and tombstoned ids."""

    __slots__ = ("_storage", "_custom", "_deleted")

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._custom: list[TimelineItem] = self._load_custom()
        self._deleted: list[str] = self._load_deleted()

    # ------------------------------- loading --------------------------------

    def _read_json(self, key: str) -> Any:
        try:
            raw = self._storage.get_item(key)
        except StorageUnavailable as exc:
            logger.warning("Local storage unavailable, starting empty: %s", exc)
            return []
        if not raw:
            return []
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable local storage entry %s", key)
            return []

    def _load_custom(self) -> list[TimelineItem]:
        raw = self._read_json(CUSTOM_STORAGE_KEY)
        if not isinstance(raw, list):
            return []
        items: list[TimelineItem] = []
        for entry in raw:
            try:
                items.append(TimelineItem.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping malformed custom item in local storage")
        return items

    def _load_deleted(self) -> list[str]:
        raw = self._read_json(DELETED_STORAGE_KEY)
        if not isinstance(raw, list):
            return []
        ids: list[str] = []
        for entry in raw:
            if entry is not None and str(entry) not in ids:
                ids.append(str(entry))
        return ids

    # ------------------------------- saving ---------------------------------

    def _write(self, key: str, value: Any) -> None:
        try:
            self._storage.set_item(key, json.dumps(value, ensure_ascii=False))
        except StorageUnavailable as exc:
            logger.warning("Could not persist %s: %s", key, exc)

    def _save_custom(self) -> None:
        self._write(CUSTOM_STORAGE_KEY, [item.to_export() for item in self._custom])

    def _save_deleted(self) -> None:
        self._write(DELETED_STORAGE_KEY, list(self._deleted))

    # ------------------------------- API ------------------------------------

    @property
    def custom_items(self) -> tuple[TimelineItem, ...]:
        return tuple(self._custom)

    @property
    def deleted_ids(self) -> tuple[str, ...]:
        return tuple(self._deleted)

    def has_pending_edits(self) -> bool:
        """True while anything is waiting to be published."""
        return bool(self._custom or self._deleted)

    def add(self, item: TimelineItem) -> None:
        """Append an author-created item."""
        self._custom.append(item)
        self._save_custom()

    def discard(self, item_id: str) -> RemovalKind:
        """Remove a custom item, or tombstone a base item id.

        Returns which of the two happened. Tombstoning an id twice is a no-op.
        """
        for index, item in enumerate(self._custom):
            if item.id == item_id:
                del self._custom[index]
                self._save_custom()
                return "custom"
        if item_id not in self._deleted:
            self._deleted.append(item_id)
            self._save_deleted()
        return "tombstone"

    def clear(self) -> None:
        """Drop both collections (after a confirmed publish)."""
        self._custom = []
        self._deleted = []
        self._save_custom()
        self._save_deleted()


__all__ = ["CUSTOM_STORAGE_KEY", "DELETED_STORAGE_KEY", "LocalEditStore", "RemovalKind"]
