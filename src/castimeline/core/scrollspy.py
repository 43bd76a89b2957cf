"""
Scroll-spy: which year header is "in view".

The observer watches year-group headers inside a horizontal band of the
viewport. With the default margins (50 % from the top, 40 % from the bottom)
the band spans 50-60 % of the viewport height, so a header counts once it has
scrolled past the middle of the screen. A header intersects when at least
``threshold`` of its own height lies inside the band.

Like an intersection observer, :meth:`YearObserver.measure` only reports
headers whose intersecting state changed since the previous measurement; the
first measurement after :meth:`YearObserver.observe` reports every header.
Intersecting entries are fed to the ``on_year`` callback, which updates the
year anchor and the URL without triggering a render.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class HeaderBox:
    """Layout of one year header in document coordinates."""

    year: str
    top: float
    height: float


@dataclass(frozen=True, slots=True)
class IntersectionEntry:
    """Change notification for one observed header."""

    year: str
    ratio: float
    is_intersecting: bool


class YearObserver:
    """Tracks year-header visibility within the viewport band."""

    def __init__(
        self,
        on_year: Callable[[str], None],
        *,
        top_margin: float = 0.5,
        bottom_margin: float = 0.4,
        threshold: float = 0.4,
    ) -> None:
        if top_margin + bottom_margin >= 1.0:
            raise ValueError("margins leave no observation band")
        self._on_year = on_year
        self.top_margin = top_margin
        self.bottom_margin = bottom_margin
        self.threshold = threshold
        self._observed: list[str] = []
        self._last: dict[str, bool] = {}
        self.visible: set[str] = set()

    @property
    def observed(self) -> tuple[str, ...]:
        return tuple(self._observed)

    def observe(self, years: Iterable[str]) -> None:
        for year in years:
            if year not in self._observed:
                self._observed.append(year)

    def disconnect(self) -> None:
        """Stop observing every header (elements are about to be replaced)."""
        self._observed = []
        self._last = {}

    def band(self, scroll_top: float, viewport_height: float) -> tuple[float, float]:
        """Document-space (top, bottom) of the observation band."""
        top = scroll_top + viewport_height * self.top_margin
        bottom = scroll_top + viewport_height * (1.0 - self.bottom_margin)
        return top, bottom

    def measure(
        self,
        headers: Sequence[HeaderBox],
        scroll_top: float,
        viewport_height: float,
    ) -> list[IntersectionEntry]:
        band_top, band_bottom = self.band(scroll_top, viewport_height)
        entries: list[IntersectionEntry] = []
        for box in headers:
            if box.year not in self._observed:
                continue
            overlap = min(box.top + box.height, band_bottom) - max(box.top, band_top)
            if box.height > 0:
                ratio = max(0.0, overlap) / box.height
            else:
                ratio = 1.0 if band_top <= box.top <= band_bottom else 0.0
            intersecting = ratio > 0 and ratio >= self.threshold
            if self._last.get(box.year) is intersecting:
                continue
            self._last[box.year] = intersecting
            entries.append(IntersectionEntry(box.year, ratio, intersecting))
        return entries

    def handle(self, entries: Iterable[IntersectionEntry]) -> None:
        for entry in entries:
            if not entry.is_intersecting:
                self.visible.discard(entry.year)
                continue
            self.visible.add(entry.year)
            self._on_year(entry.year)

    def scroll(
        self,
        headers: Sequence[HeaderBox],
        scroll_top: float,
        viewport_height: float,
    ) -> list[IntersectionEntry]:
        """Measure and dispatch in one step; returns the reported entries."""
        entries = self.measure(headers, scroll_top, viewport_height)
        self.handle(entries)
        return entries


__all__ = ["HeaderBox", "IntersectionEntry", "YearObserver"]
