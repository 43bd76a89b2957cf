"""
Timeline renderer: swaps year-grouped cards into the display surface.

Transition rules
----------------
- Animated swap: motion is not reduced, the render was not requested as
  immediate and a previous render already completed. Outgoing cards are
  flagged as exiting for ``TRANSITION_SECONDS`` before the new set is
  swapped in with an enter class.
- Immediate swap: first render, reduced motion or an immediate request.
- A newer render cancels a swap still waiting on its exit animation.

Empty result sets clear the list, show the empty-state placeholder and
disconnect the scroll-spy. Every completed swap re-attaches the scroll-spy to
the new headers and then calls the ``after_render`` hook.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Final

from castimeline.core.contracts.item import TimelineItem
from castimeline.core.scheduler import Scheduler, TimerHandle
from castimeline.core.scrollspy import YearObserver
from castimeline.core.settings import get_logger

from .cards import CardView, YearGroup, group_by_year
from .templates import render_groups_html

TRANSITION_SECONDS: Final = 0.22

logger = get_logger("castimeline.render")


@dataclass
class TimelineSurface:
    """The display target: what the page currently shows.

    Attributes
    ----------
    html : str
        Markup of the timeline list.
    groups : tuple[YearGroup, ...]
        View models behind ``html``.
    empty_state_visible : bool
        True when the filtered set is empty.
    busy : bool
        True while a dataset load is in flight.
    exiting : bool
        True while outgoing cards run their exit animation.
    scroll_target : str | None
        Year group most recently scrolled into view programmatically.
    """

    html: str = ""
    groups: tuple[YearGroup, ...] = ()
    empty_state_visible: bool = False
    busy: bool = False
    exiting: bool = False
    entering: bool = False
    scroll_target: str | None = None
    scroll_behavior: str = "auto"
    focused_card: str | None = None
    swaps: int = field(default=0)

    def header_years(self) -> list[str]:
        return [group.label for group in self.groups]

    def cards(self) -> list[CardView]:
        return [card for group in self.groups for card in group.cards]

    def card_ids(self) -> list[str]:
        return [card.id for card in self.cards()]

    def find_card(self, card_id: str) -> CardView | None:
        return next((card for card in self.cards() if card.id == card_id), None)

    def scroll_to_year(self, year: str, *, smooth: bool) -> bool:
        """Scroll a year group into view; False when it is not rendered."""
        if year not in self.header_years():
            return False
        self.scroll_target = year
        self.scroll_behavior = "smooth" if smooth else "auto"
        return True

    def clear(self) -> None:
        self.html = ""
        self.groups = ()


MotionCheck = Callable[[], bool]


class TimelineRenderer:
    """Projects item sequences onto a :class:`TimelineSurface`."""

    def __init__(
        self,
        surface: TimelineSurface,
        scheduler: Scheduler,
        spy: YearObserver,
        *,
        motion_reduced: MotionCheck | bool = False,
        after_render: Callable[[], None] | None = None,
        transition_seconds: float = TRANSITION_SECONDS,
        locale: str = "en-GB",
    ) -> None:
        self.surface = surface
        self._scheduler = scheduler
        self._spy = spy
        self._motion_reduced = motion_reduced
        self._after_render = after_render
        self.transition_seconds = transition_seconds
        self.locale = locale
        self.initial_render_done = False
        self._pending_swap: TimerHandle | None = None

    def motion_reduced(self) -> bool:
        if callable(self._motion_reduced):
            return bool(self._motion_reduced())
        return bool(self._motion_reduced)

    @property
    def swap_pending(self) -> bool:
        return self._pending_swap is not None and not self._pending_swap.cancelled

    def _cancel_pending(self) -> None:
        if self._pending_swap is not None:
            self._pending_swap.cancel()
            self._pending_swap = None

    def render(
        self,
        items: Sequence[TimelineItem],
        *,
        deletable: bool = False,
        immediate: bool = False,
    ) -> None:
        """Replace the displayed list with ``items`` grouped by year."""
        self._cancel_pending()
        surface = self.surface
        if not items:
            self._spy.disconnect()
            surface.clear()
            surface.exiting = False
            surface.empty_state_visible = True
            return
        surface.empty_state_visible = False

        groups = group_by_year(items, deletable=deletable, locale=self.locale)
        animate = not immediate and self.initial_render_done and not self.motion_reduced()
        if animate:
            surface.exiting = True
            html = render_groups_html(groups, entering=True)

            def swap() -> None:
                self._pending_swap = None
                self._swap(groups, html, entering=True)

            self._pending_swap = self._scheduler.call_later(self.transition_seconds, swap)
        else:
            self._swap(groups, render_groups_html(groups), entering=False)
        self.initial_render_done = True

    def _swap(self, groups: tuple[YearGroup, ...], html: str, *, entering: bool) -> None:
        surface = self.surface
        surface.html = html
        surface.groups = groups
        surface.exiting = False
        surface.entering = entering
        surface.swaps += 1
        logger.debug("Rendered %d year groups", len(groups))
        self._spy.disconnect()
        self._spy.observe(surface.header_years())
        if self._after_render is not None:
            self._after_render()


__all__ = ["TRANSITION_SECONDS", "TimelineRenderer", "TimelineSurface"]
