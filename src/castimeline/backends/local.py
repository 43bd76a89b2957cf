"""
Local-mode backend: static dataset plus on-device edits.

The authoritative dataset is a JSON file, read from disk or fetched over HTTP
with a cache-busting ``ts`` query parameter. Authoring never leaves the
device: new events and deletions go into the :class:`LocalEditStore` until a
publish makes them authoritative.

The staff "unlocked" flag lives in session-scoped storage under
``kcm.timeline.teacherUnlocked`` so it survives a reload but not a new
session.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Final

import httpx
from pydantic import ValidationError

from castimeline.core.contracts.draft import EventDraft
from castimeline.core.contracts.item import TimelineDataset, TimelineItem
from castimeline.core.errors import AuthorizationFailure, NetworkFailure, StorageUnavailable
from castimeline.core.pipeline import build_visible_items
from castimeline.core.settings import get_logger
from castimeline.core.storage.edits import LocalEditStore
from castimeline.core.storage.kv import KeyValueStorage

from .base import BackendMode

SESSION_UNLOCK_KEY: Final = "kcm.timeline.teacherUnlocked"

logger = get_logger("castimeline.backends.local")


def is_remote_source(source: str | Path) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


class LocalBackend:
    """Event store for the static site (no server behind it)."""

    mode: BackendMode = "local"

    def __init__(
        self,
        source: str | Path,
        edits: LocalEditStore,
        session: KeyValueStorage,
        *,
        admin_password: str = "admin",
        client: httpx.Client | None = None,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self.source = source
        self.edits = edits
        self._session = session
        self._admin_password = admin_password
        self._client = client
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    # ------------------------------- dataset --------------------------------

    def _read_source(self) -> Any:
        if is_remote_source(self.source):
            client = self._client or httpx.Client(timeout=10.0)
            try:
                response = client.get(str(self.source), params={"ts": self._clock_ms()})
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as exc:
                raise NetworkFailure(f"Could not fetch {self.source}: {exc}") from exc
            except ValueError as exc:
                raise NetworkFailure(f"{self.source} did not return JSON") from exc
            finally:
                if self._client is None:
                    client.close()
        path = Path(self.source)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise NetworkFailure(f"Could not read {path}: {exc}") from exc
        except ValueError as exc:
            raise NetworkFailure(f"{path} is not valid JSON") from exc

    def fetch_dataset(self) -> TimelineDataset:
        payload = self._read_source()
        if not isinstance(payload, dict):
            raise NetworkFailure("Timeline data must be a JSON object")
        try:
            return TimelineDataset.model_validate(payload)
        except ValidationError as exc:
            raise NetworkFailure(f"Malformed timeline data: {exc.error_count()} errors") from exc

    def visible_items(self, base: Sequence[TimelineItem]) -> list[TimelineItem]:
        return build_visible_items(base, self.edits.custom_items, self.edits.deleted_ids)

    def has_pending_edits(self) -> bool:
        return self.edits.has_pending_edits()

    def clear_local_edits(self) -> None:
        self.edits.clear()

    # ------------------------------- session --------------------------------

    def is_authorized(self) -> bool:
        try:
            return self._session.get_item(SESSION_UNLOCK_KEY) == "true"
        except StorageUnavailable:
            return False

    def refresh_authorization(self) -> bool:
        return self.is_authorized()

    def _set_authorized(self, value: bool) -> None:
        try:
            self._session.set_item(SESSION_UNLOCK_KEY, "true" if value else "false")
        except StorageUnavailable as exc:
            logger.warning("Session flag not saved: %s", exc)

    def login(self, password: str) -> bool:
        ok = bool(password) and password.strip() == self._admin_password
        if ok:
            self._set_authorized(True)
        return ok

    def logout(self) -> None:
        self._set_authorized(False)

    # ------------------------------- authoring ------------------------------

    def _require_session(self) -> None:
        if not self.is_authorized():
            raise AuthorizationFailure("Log in to edit the timeline.")

    def create_event(self, draft: EventDraft) -> TimelineItem:
        draft.require_complete()
        self._require_session()
        item = draft.to_item()
        self.edits.add(item)
        logger.info("Added local event %s (not published yet)", item.id)
        return item

    def delete_event(self, item_id: str) -> None:
        self._require_session()
        kind = self.edits.discard(item_id)
        logger.info("Deleted %s locally (%s)", item_id, kind)

    def upload_image(self, data_url: str, filename: str) -> str | None:
        # No upload target without a server; callers keep the data URL.
        return None


__all__ = ["LocalBackend", "SESSION_UNLOCK_KEY", "is_remote_source"]
