"""
View State Machine: the one update path for timeline view state.

Every mutation goes through :meth:`ViewStateMachine.update_state`, which

1. does nothing while the state is being hydrated from the URL fragment, so
   an inbound sync can never be clobbered by an outbound write;
2. validates the whole partial on a staged copy (atomic: one bad field
   changes nothing);
3. applies it, bumps the revision, rewrites the fragment and schedules a
   render.

Renders are coalesced per animation frame. The scroll-spy has its own inbound
channel, :meth:`ViewStateMachine.set_year_anchor`, which resyncs the URL but
never renders, so scrolling cannot cause a render loop.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from castimeline.core.contracts.view import NavigationState, ViewState
from castimeline.core.scheduler import Scheduler
from castimeline.core.settings import get_logger
from castimeline.core.urlsync import UrlSync

logger = get_logger("castimeline.state")

RenderFn = Callable[[bool], None]


class ViewStateMachine:
    """Owns the :class:`ViewState` and its URL/render side effects.

    Attributes
    ----------
    state : ViewState
        The single mutable view state.
    hydrating : bool
        True while navigation fields are being reset from the URL fragment.
    revision : int
        Monotonically increasing counter, bumped by every accepted update.
    """

    __slots__ = ("state", "hydrating", "revision", "_scheduler", "_url", "_render", "_queued")

    def __init__(self, *, scheduler: Scheduler, url_sync: UrlSync, render: RenderFn) -> None:
        self.state = ViewState()
        self.hydrating = False
        self.revision = 0
        self._scheduler = scheduler
        self._url = url_sync
        self._render = render
        self._queued = False

    # ------------------------------- updates --------------------------------

    def update_state(self, **partial: Any) -> bool:
        """Merge ``partial`` into the state, resync the URL and schedule a render.

        Returns False when suppressed by hydration. Raises
        :class:`pydantic.ValidationError` (state untouched) on invalid values
        and :class:`KeyError` for unknown fields.
        """
        if self.hydrating:
            return False
        unknown = set(partial) - set(ViewState.model_fields)
        if unknown:
            raise KeyError(f"Unknown view state fields: {sorted(unknown)}")
        staged = self.state.model_copy()
        for key, value in partial.items():
            setattr(staged, key, value)
        for key in partial:
            setattr(self.state, key, getattr(staged, key))
        self.revision += 1
        self.sync_url()
        self.request_render()
        return True

    def set_year_anchor(self, year: str) -> None:
        """Scroll-spy inbound channel: update the anchor and URL, never render."""
        if self.hydrating or year == self.state.year_anchor:
            return
        self.state.year_anchor = year
        self.sync_url()

    def hydrate(self, nav: NavigationState) -> None:
        """Reset every navigational field from ``nav`` with outbound sync suppressed."""
        fields = {
            "filter": nav.filter,
            "sort": nav.sort,
            "query": nav.query,
            "year_anchor": nav.year_anchor,
        }
        staged = self.state.model_copy()
        for key, value in fields.items():
            setattr(staged, key, value)
        self.hydrating = True
        try:
            for key in fields:
                setattr(self.state, key, getattr(staged, key))
        finally:
            self.hydrating = False

    def reset_navigation(self) -> None:
        """Return filter, query, sort and anchor to their defaults."""
        default = NavigationState()
        self.state.filter = default.filter  # type: ignore[assignment]
        self.state.query = default.query
        self.state.sort = default.sort  # type: ignore[assignment]
        self.state.year_anchor = default.year_anchor
        self.revision += 1
        self.sync_url()

    # ------------------------------- side effects ---------------------------

    def sync_url(self) -> None:
        if self.hydrating:
            return
        self._url.write(self.state.navigation())

    @property
    def render_queued(self) -> bool:
        return self._queued

    def request_render(self, immediate: bool = False) -> None:
        """Render now (``immediate``) or once on the next animation frame."""
        if immediate:
            self._render(True)
            return
        if self._queued:
            return
        self._queued = True
        self._scheduler.request_frame(self._flush_render)

    def _flush_render(self) -> None:
        self._queued = False
        self._render(False)


__all__ = ["ViewStateMachine"]
