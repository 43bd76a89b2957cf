"""The event-store capability the timeline core depends on."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol

from castimeline.core.contracts.draft import EventDraft
from castimeline.core.contracts.item import TimelineDataset, TimelineItem

BackendMode = Literal["local", "server"]


class EventBackend(Protocol):
    """Dataset reads, session state and authoring mutations.

    Every call is synchronous. Failures surface as the exceptions in
    :mod:`castimeline.core.errors`:

    - ``fetch_dataset`` raises ``NetworkFailure``;
    - ``create_event`` raises ``ValidationFailure`` before any I/O, and
      ``AuthorizationFailure`` without a session;
    - ``delete_event`` raises ``AuthorizationFailure`` without a session.
    """

    mode: BackendMode

    def fetch_dataset(self) -> TimelineDataset: ...

    def visible_items(self, base: Sequence[TimelineItem]) -> list[TimelineItem]: ...

    def has_pending_edits(self) -> bool: ...

    def clear_local_edits(self) -> None: ...

    def is_authorized(self) -> bool: ...

    def refresh_authorization(self) -> bool: ...

    def login(self, password: str) -> bool: ...

    def logout(self) -> None: ...

    def create_event(self, draft: EventDraft) -> TimelineItem: ...

    def delete_event(self, item_id: str) -> None: ...

    def upload_image(self, data_url: str, filename: str) -> str | None: ...


__all__ = ["BackendMode", "EventBackend"]
