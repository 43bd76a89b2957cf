"""
File-backed event store behind ``/api/timeline-data``.

Layout under the site root::

    assets/timeline-data.json   base dataset (read only here)
    data/custom-items.json      events added through the server
    data/deleted-ids.json       tombstones for base events

Unreadable files read as their empty value, the same degradation the client
applies to its local edits.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from castimeline.core.contracts.item import TimelineItem
from castimeline.core.pipeline import build_visible_items
from castimeline.core.settings import get_logger
from castimeline.core.storage.edits import RemovalKind

logger = get_logger("castimeline.api.data_store")


def _read_json(path: Path, fallback: Any) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return fallback
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return fallback


def _items(raw: Any) -> list[TimelineItem]:
    if not isinstance(raw, list):
        return []
    items: list[TimelineItem] = []
    for entry in raw:
        try:
            items.append(TimelineItem.model_validate(entry))
        except ValidationError:
            logger.warning("Skipping malformed timeline entry")
    return items


def _write_json(path: Path, value: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(value, indent=2, ensure_ascii=False), encoding="utf-8")


class TimelineFileStore:
    """Server-side merge of the base dataset with server-recorded edits."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.base_path = self.root / "assets" / "timeline-data.json"
        self.custom_path = self.root / "data" / "custom-items.json"
        self.deleted_path = self.root / "data" / "deleted-ids.json"

    def base_payload(self) -> dict[str, Any]:
        payload = _read_json(self.base_path, {})
        return payload if isinstance(payload, dict) else {}

    def _base_items(self) -> list[TimelineItem]:
        return _items(self.base_payload().get("items"))

    def custom_items(self) -> list[TimelineItem]:
        return _items(_read_json(self.custom_path, []))

    def deleted_ids(self) -> list[str]:
        raw = _read_json(self.deleted_path, [])
        return [str(entry) for entry in raw] if isinstance(raw, list) else []

    def timeline_data(self) -> dict[str, Any]:
        """Base metadata plus the merged visible items."""
        base = self.base_payload()
        merged = build_visible_items(self._base_items(), self.custom_items(), self.deleted_ids())
        data: dict[str, Any] = {"items": [item.to_export() for item in merged]}
        if base.get("school"):
            data["school"] = base["school"]
        if base.get("lastUpdated"):
            data["lastUpdated"] = base["lastUpdated"]
        return data

    def add_item(self, item: TimelineItem) -> None:
        items = [entry.to_export() for entry in self.custom_items()]
        items.append(item.to_export())
        _write_json(self.custom_path, items)

    def delete(self, item_id: str) -> RemovalKind:
        """Drop a server-added event, or tombstone a base event once."""
        custom = self.custom_items()
        remaining = [item for item in custom if item.id != item_id]
        if len(remaining) != len(custom):
            _write_json(self.custom_path, [item.to_export() for item in remaining])
            return "custom"
        deleted = self.deleted_ids()
        if item_id not in deleted:
            deleted.append(item_id)
            _write_json(self.deleted_path, deleted)
        return "tombstone"


__all__ = ["TimelineFileStore"]
