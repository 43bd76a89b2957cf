"""
TimelineApp: the single owned context of a running timeline.

One instance holds everything a page session needs: the view state (through
:class:`ViewStateMachine`), the event backend picked at start-up, the
renderer and its scroll-spy, URL sync, the update/publish reconciler, the
notification surface and the pending image uploads. Nothing here is
module-global; tearing a session down is dropping the object.

Data flow
---------
backend fetch -> merge pipeline (with local edits) -> ``state.items``
-> filter/search/sort -> renderer -> surface. User input goes through the
state machine, which rewrites the URL fragment and coalesces renders;
hashchange and the scroll-spy feed back in through hydration and the year
anchor channel respectively.

Errors from backends never escape an operation: they become the ``error``
flag and retry banner (dataset loads) or status/toast messages (authoring,
publishing).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Final

import httpx

from castimeline.backends.base import BackendMode, EventBackend
from castimeline.backends.local import LocalBackend
from castimeline.backends.publish import PublishClient
from castimeline.backends.remote import NOT_LOGGED_IN, RemoteBackend
from castimeline.core.contracts.draft import EventDraft
from castimeline.core.contracts.item import (
    DEFAULT_SCHOOL,
    FILTERS,
    TimelineDataset,
    TimelineItem,
)
from castimeline.core.contracts.view import SORT_ORDERS, ViewState
from castimeline.core.errors import AuthorizationFailure, NetworkFailure, PublishFailure, ValidationFailure
from castimeline.core.notify import Notifier
from castimeline.core.pipeline import build_export_payload, filter_and_sort
from castimeline.core.reconcile import UPDATE_POLL_SECONDS, UpdateReconciler
from castimeline.core.render.renderer import TimelineRenderer, TimelineSurface
from castimeline.core.scheduler import Debouncer, Scheduler
from castimeline.core.scrollspy import HeaderBox, IntersectionEntry, YearObserver
from castimeline.core.settings import Settings, get_logger
from castimeline.core.state import ViewStateMachine
from castimeline.core.storage.edits import LocalEditStore
from castimeline.core.storage.kv import JsonFileStorage, KeyValueStorage, MemoryStorage
from castimeline.core.urlsync import Location, UrlSync

SEARCH_DEBOUNCE_SECONDS: Final = 0.14
LOCAL_HOSTS: Final = ("localhost", "127.0.0.1")

# Rough layout used when no real geometry is supplied to `scroll`.
HEADER_HEIGHT: Final = 48.0
CARD_HEIGHT: Final = 220.0

logger = get_logger("castimeline.app")


@dataclass
class UploadEntry:
    """An image attached to the draft; ``url`` starts as a data URL."""

    url: str
    name: str


def select_mode(location: Location) -> BackendMode:
    """Server mode when served from a loopback host over a non-file scheme."""
    if location.hostname in LOCAL_HOSTS and location.scheme != "file":
        return "server"
    return "local"


class TimelineApp:
    """Timeline session: state, rendering, URL sync, authoring and publishing."""

    def __init__(
        self,
        *,
        backend: EventBackend,
        location: Location,
        scheduler: Scheduler,
        publish_client: PublishClient | None = None,
        surface: TimelineSurface | None = None,
        motion_reduced: bool | Callable[[], bool] = False,
        update_poll_seconds: float = UPDATE_POLL_SECONDS,
        locale: str = "en-GB",
        today: Callable[[], date] = date.today,
        on_reload: Callable[[], None] | None = None,
    ) -> None:
        self.backend = backend
        self.location = location
        self.scheduler = scheduler
        self.publish_client = publish_client
        self.update_poll_seconds = update_poll_seconds
        self._today = today
        self._on_reload = on_reload

        self.surface = surface or TimelineSurface()
        self.notifier = Notifier(scheduler)
        self.url_sync = UrlSync(location)
        self.spy = YearObserver(self._on_spy_year)
        self.machine = ViewStateMachine(
            scheduler=scheduler, url_sync=self.url_sync, render=self._render
        )
        self.renderer = TimelineRenderer(
            self.surface,
            scheduler,
            self.spy,
            motion_reduced=motion_reduced,
            after_render=self._after_render,
            locale=locale,
        )
        self.reconciler = UpdateReconciler(
            scheduler,
            fetch=backend.fetch_dataset,
            has_pending_edits=backend.has_pending_edits,
            is_loaded=lambda: self.state.loaded,
            notify=self.notifier.show_toast,
            reload=self.reload,
        )
        self._search = Debouncer(scheduler, SEARCH_DEBOUNCE_SECONDS, self.set_query)

        self.base_items: list[TimelineItem] = []
        self.school = DEFAULT_SCHOOL
        self.last_updated = ""
        self.search_text = ""
        self.pending_year_scroll = ""
        self.uploads: list[UploadEntry] = []
        self.authorized = backend.is_authorized()
        self.reloads = 0
        self._render_listeners: list[Callable[[], None]] = []

        location.add_hashchange_listener(self.on_hashchange)

    @property
    def state(self) -> ViewState:
        return self.machine.state

    @property
    def mode(self) -> BackendMode:
        return self.backend.mode

    @property
    def banner_visible(self) -> bool:
        """The retry banner shows while the last load failed."""
        return self.state.error

    def motion_reduced(self) -> bool:
        return self.renderer.motion_reduced()

    # ------------------------------- lifecycle ------------------------------

    def start(self) -> None:
        """Hydrate from the URL, check the session, load data and start polling."""
        self.apply_fragment()
        if self.mode == "server":
            self._set_authorized(self.backend.refresh_authorization())
        self.load_data()
        if self.mode == "local":
            self.reconciler.start_update_polling(self.update_poll_seconds)

    def stop(self) -> None:
        self.reconciler.stop_update_polling()
        self._search.cancel()

    def load_data(self) -> bool:
        """Fetch the dataset; on failure flag the error and keep the last good state."""
        self.surface.busy = True
        try:
            dataset = self.backend.fetch_dataset()
        except NetworkFailure as exc:
            logger.warning("Timeline load failed: %s", exc)
            self.state.error = True
            return False
        finally:
            self.surface.busy = False
        self.school = dataset.school or self.school
        self.last_updated = dataset.last_updated or self.last_updated
        self.base_items = list(dataset.items)
        self.state.items = self.backend.visible_items(self.base_items)
        self.reconciler.capture(dataset)
        self.state.loaded = True
        self.state.error = False
        self.machine.request_render(immediate=True)
        return True

    def retry(self) -> bool:
        self.state.error = False
        return self.load_data()

    def reload(self) -> None:
        """Start over from the authoritative data (the page-reload equivalent)."""
        self.reloads += 1
        if self._on_reload is not None:
            self._on_reload()
            return
        self.load_data()

    # ------------------------------- derived view ---------------------------

    def visible_items(self) -> list[TimelineItem]:
        """The filtered and sorted display sequence; empty until loaded."""
        state = self.state
        if not state.loaded:
            return []
        return filter_and_sort(state.items, state.filter, state.query, state.sort)

    def _render(self, immediate: bool) -> None:
        self.renderer.render(
            self.visible_items(), deletable=self.authorized, immediate=immediate
        )

    def add_render_listener(self, listener: Callable[[], None]) -> None:
        """Call ``listener`` after every completed swap."""
        self._render_listeners.append(listener)

    def _after_render(self) -> None:
        if self.pending_year_scroll:
            self.surface.scroll_to_year(self.pending_year_scroll, smooth=not self.motion_reduced())
            self.pending_year_scroll = ""
        for listener in list(self._render_listeners):
            listener()

    def _refresh_items(self) -> None:
        self.state.items = self.backend.visible_items(self.base_items)
        self.machine.request_render(immediate=True)

    # ------------------------------- navigation -----------------------------

    def set_filter(self, value: str) -> bool:
        if value not in FILTERS or value == self.state.filter:
            return False
        return self.machine.update_state(filter=value)

    def set_query(self, value: str = "") -> bool:
        self.search_text = value
        return self.machine.update_state(query=value)

    def search_input(self, value: str) -> None:
        """Keystroke in the search box; only the last one in the window applies."""
        self.search_text = value
        self._search(value)

    def set_sort(self, value: str) -> bool:
        if value not in SORT_ORDERS:
            return False
        return self.machine.update_state(sort=value)

    def toggle_sort(self) -> str:
        next_sort = "oldest" if self.state.sort == "newest" else "newest"
        self.machine.update_state(sort=next_sort)
        return next_sort

    def reset(self) -> None:
        self._search.cancel()
        self.search_text = ""
        self.pending_year_scroll = ""
        self.machine.reset_navigation()
        self.machine.request_render(immediate=True)

    def open_by_id(self, item_id: str) -> bool:
        """Scroll a rendered card into view and focus it."""
        if self.surface.find_card(item_id) is None:
            return False
        self.surface.focused_card = item_id
        return True

    def apply_fragment(self) -> None:
        """Reset every navigational field from the URL fragment."""
        nav = self.url_sync.read()
        self._search.cancel()
        self.machine.hydrate(nav)
        self.search_text = nav.query
        self.pending_year_scroll = nav.year_anchor
        if self.state.loaded:
            self.machine.request_render(immediate=True)

    def on_hashchange(self) -> None:
        if self.machine.hydrating:
            return
        self.apply_fragment()

    # ------------------------------- scroll-spy -----------------------------

    def header_layout(self) -> list[HeaderBox]:
        """Estimated document positions of the rendered year headers."""
        boxes: list[HeaderBox] = []
        top = 0.0
        for group in self.surface.groups:
            boxes.append(HeaderBox(group.label, top, HEADER_HEIGHT))
            top += HEADER_HEIGHT + CARD_HEIGHT * len(group.cards)
        return boxes

    def scroll(
        self,
        scroll_top: float,
        viewport_height: float,
        headers: Sequence[HeaderBox] | None = None,
    ) -> list[IntersectionEntry]:
        boxes = self.header_layout() if headers is None else headers
        return self.spy.scroll(boxes, scroll_top, viewport_height)

    def _on_spy_year(self, year: str) -> None:
        self.machine.set_year_anchor(year)

    # ------------------------------- session --------------------------------

    def _set_authorized(self, value: bool) -> None:
        changed = value != self.authorized
        self.authorized = value
        if changed and self.state.loaded:
            self.machine.request_render(immediate=True)

    def login(self, password: str) -> bool:
        if not (password or "").strip():
            return False
        ok = self.backend.login(password)
        if not ok:
            self.notifier.set_status("Incorrect password.", error=True)
        self._set_authorized(ok or self.authorized)
        return ok

    def logout(self) -> None:
        self.backend.logout()
        self._set_authorized(False)

    # ------------------------------- authoring ------------------------------

    def attach_image(self, data_url: str, filename: str) -> UploadEntry | None:
        """Attach an image; the data URL is replaced by an upload URL when possible."""
        if not data_url.startswith("data:image/"):
            return None
        entry = UploadEntry(url=data_url, name=filename)
        self.uploads.append(entry)
        url = self.backend.upload_image(data_url, filename)
        if url:
            entry.url = url
        return entry

    def remove_upload(self, index: int) -> bool:
        if not 0 <= index < len(self.uploads):
            return False
        del self.uploads[index]
        return True

    def add_event(self, draft: EventDraft) -> TimelineItem | None:
        """Save a new event; returns None (with a status message) on failure."""
        draft = draft.with_images([entry.url for entry in self.uploads])
        try:
            item = self.backend.create_event(draft)
        except (ValidationFailure, AuthorizationFailure) as exc:
            self.notifier.set_status(str(exc), error=True)
            return None
        except NetworkFailure as exc:
            logger.warning("Saving event failed: %s", exc)
            self.notifier.set_status("Unable to save to server.", error=True)
            return None
        self.uploads = []
        if self.mode == "server":
            self.load_data()
            self.notifier.set_status("Event added!", hide_after=2.0)
        else:
            self._refresh_items()
            self.notifier.set_status("Event added! (Not published yet)", hide_after=2.0)
        return item

    def delete_event(self, item_id: str) -> bool:
        # Only displayed events can be deleted.
        if item_id not in {item.id for item in self.state.items}:
            self.notifier.set_status(f"No event with id {item_id}.", error=True)
            return False
        try:
            self.backend.delete_event(item_id)
        except AuthorizationFailure as exc:
            self.notifier.set_status(str(exc) or NOT_LOGGED_IN, error=True)
            return False
        except NetworkFailure as exc:
            logger.warning("Deleting %s failed: %s", item_id, exc)
            self.notifier.set_status("Unable to delete on server.", error=True)
            return False
        if self.mode == "server":
            self.load_data()
        else:
            self._refresh_items()
        return True

    # ------------------------------- export & publish -----------------------

    def build_payload(self) -> dict[str, Any]:
        merged = self.backend.visible_items(self.base_items)
        return build_export_payload(merged, school=self.school, today=self._today())

    def export_payload(self) -> dict[str, Any] | None:
        """Dataset to download as ``timeline-data.json``; None before the first load."""
        if not self.state.loaded:
            self.notifier.set_status("Load the timeline before exporting.", error=True)
            return None
        payload = self.build_payload()
        self.notifier.set_status(
            "Exported timeline-data.json. Replace assets/timeline-data.json in GitHub and push.",
            hide_after=4.0,
        )
        return payload

    def publish(self, password: str) -> bool:
        """Publish the merged dataset; local edits are cleared only on success."""
        if self.publish_client is None or not self.publish_client.endpoint:
            self.notifier.set_status(
                "Publish endpoint not set. Configure CAS_TIMELINE_PUBLISH_ENDPOINT.", error=True
            )
            return False
        password = (password or "").strip()
        if not password:
            self.notifier.set_status("Enter the publish password.", error=True)
            return False
        if not self.state.loaded:
            self.notifier.set_status("Load the timeline before publishing.", error=True)
            return False

        payload = self.build_payload()
        self.notifier.set_status("Publishing...")
        try:
            self.publish_client.publish(payload, password)
        except PublishFailure as exc:
            self.notifier.set_status(str(exc), error=True)
            if exc.unreachable:
                self.notifier.show_toast(str(exc), error=True)
            return False

        self.notifier.set_status(
            "Published to GitHub. It can take 1-2 minutes to update the public site.",
            hide_after=6.0,
        )
        self.notifier.show_toast("Published to GitHub. Updating public site (about 1-2 minutes).")
        self.clear_local_edits()
        self.reconciler.watch_publish(payload)
        return True

    def clear_local_edits(self) -> None:
        self.backend.clear_local_edits()
        self._refresh_items()
        self.reconciler.reset_current(
            TimelineDataset(school=self.school, last_updated=self.last_updated, items=self.base_items)
        )


def build_backend(
    location: Location,
    settings: Settings,
    *,
    storage: KeyValueStorage | None = None,
    session: KeyValueStorage | None = None,
    client: httpx.Client | None = None,
) -> EventBackend:
    """Pick and construct the event backend for ``location`` (once, at start-up)."""
    if select_mode(location) == "server":
        origin = f"{location.scheme}://{location.hostname}"
        port = httpx.URL(location.href).port
        base_url = f"{origin}:{port}" if port else origin
        return RemoteBackend(base_url, client=client)
    edits = LocalEditStore(storage if storage is not None else JsonFileStorage(Path(settings.storage_path)))
    source: str | Path = settings.data_url
    if not str(source).startswith(("http://", "https://")):
        source = Path(settings.site_root) / settings.data_url
    return LocalBackend(
        source,
        edits,
        session if session is not None else MemoryStorage(),
        admin_password=settings.admin_password,
        client=client,
    )


def build_timeline_app(
    location: Location,
    settings: Settings,
    scheduler: Scheduler,
    *,
    storage: KeyValueStorage | None = None,
    session: KeyValueStorage | None = None,
    client: httpx.Client | None = None,
    **kwargs: Any,
) -> TimelineApp:
    """Wire a :class:`TimelineApp` from settings and the page location."""
    backend = build_backend(location, settings, storage=storage, session=session, client=client)
    publish_client = (
        PublishClient(settings.publish_endpoint, client=client) if settings.publish_endpoint else None
    )
    return TimelineApp(
        backend=backend,
        location=location,
        scheduler=scheduler,
        publish_client=publish_client,
        update_poll_seconds=settings.update_poll_seconds,
        **kwargs,
    )


__all__ = [
    "LOCAL_HOSTS",
    "SEARCH_DEBOUNCE_SECONDS",
    "TimelineApp",
    "UploadEntry",
    "build_backend",
    "build_timeline_app",
    "select_mode",
]
