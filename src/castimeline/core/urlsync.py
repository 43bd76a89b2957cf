"""
URL fragment <-> navigation state, plus a model of the browser location.

Fragment grammar
----------------
Query-string encoding after ``#`` with the keys ``year``, ``filter``, ``q``
and ``sort`` (written in that order). Defaults are omitted:

- ``filter`` is dropped for ``All``;
- ``q`` is dropped when blank and written trimmed;
- ``sort`` is dropped for ``oldest``;
- ``year`` is written whenever an anchor is set.

Parsing is where untrusted input enters, so values are validated there:
unknown filters or sort orders fall back to their defaults and missing keys
reset to defaults rather than keeping stale values.

Round-trip law: ``parse_fragment(serialize_fragment(nav)) == normalize(nav)``
where normalisation only trims the query.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from castimeline.core.contracts.item import ALL_FILTER, FILTERS
from castimeline.core.contracts.view import DEFAULT_SORT, SORT_ORDERS, NavigationState

HashListener = Callable[[], None]


def normalize_navigation(nav: NavigationState) -> NavigationState:
    """The navigation state a fragment round-trip reproduces."""
    return replace(nav, query=nav.query.strip())


def serialize_fragment(nav: NavigationState) -> str:
    """Encode navigation state as a fragment body (without the ``#``)."""
    params: list[tuple[str, str]] = []
    if nav.year_anchor:
        params.append(("year", nav.year_anchor))
    if nav.filter != ALL_FILTER:
        params.append(("filter", nav.filter))
    query = nav.query.strip()
    if query:
        params.append(("q", query))
    if nav.sort != DEFAULT_SORT:
        params.append(("sort", nav.sort))
    return urlencode(params)


def parse_fragment(fragment: str | None) -> NavigationState:
    """Decode a fragment (with or without ``#``) into validated navigation state."""
    body = (fragment or "").lstrip("#")
    if not body:
        return NavigationState()
    params = parse_qs(body, keep_blank_values=True)

    def first(key: str) -> str | None:
        values = params.get(key)
        return values[0] if values else None

    filter_name = first("filter")
    sort = first("sort")
    return NavigationState(
        filter=filter_name if filter_name in FILTERS else ALL_FILTER,
        query=first("q") or "",
        sort=sort if sort in SORT_ORDERS else DEFAULT_SORT,
        year_anchor=first("year") or "",
    )


class Location:
    """In-process model of ``window.location`` and ``window.history``.

    `replace_state` rewrites the current entry without adding history;
    `navigate` pushes an entry and notifies hashchange listeners, like a
    pasted link or an in-page anchor; `back` pops one entry.
    """

    def __init__(self, url: str = "http://localhost:3000/") -> None:
        self._entries: list[str] = [url]
        self._listeners: list[HashListener] = []

    # ----- URL parts -------------------------------------------------------
    @property
    def href(self) -> str:
        return self._entries[-1]

    @property
    def scheme(self) -> str:
        return urlsplit(self.href).scheme

    @property
    def hostname(self) -> str:
        return urlsplit(self.href).hostname or ""

    @property
    def fragment(self) -> str:
        return urlsplit(self.href).fragment

    def base(self) -> str:
        """The URL without its fragment."""
        parts = urlsplit(self.href)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))

    @property
    def history_length(self) -> int:
        return len(self._entries)

    # ----- History ---------------------------------------------------------
    def replace_state(self, url: str) -> None:
        self._entries[-1] = url

    def navigate(self, fragment: str) -> None:
        """Jump to a new fragment, adding a history entry and firing hashchange."""
        body = fragment.lstrip("#")
        url = f"{self.base()}#{body}" if body else self.base()
        previous = self.fragment
        self._entries.append(url)
        if self.fragment != previous:
            self._fire()

    def back(self) -> None:
        if len(self._entries) < 2:
            return
        previous = self.fragment
        self._entries.pop()
        if self.fragment != previous:
            self._fire()

    def add_hashchange_listener(self, listener: HashListener) -> None:
        self._listeners.append(listener)

    def _fire(self) -> None:
        for listener in list(self._listeners):
            listener()


class UrlSync:
    """Reads and writes navigation state through a :class:`Location`."""

    def __init__(self, location: Location) -> None:
        self.location = location

    def read(self) -> NavigationState:
        return parse_fragment(self.location.fragment)

    def write(self, nav: NavigationState) -> str:
        """Rewrite the fragment in place (no history entry); returns the new URL."""
        body = serialize_fragment(nav)
        base = self.location.base()
        url = f"{base}#{body}" if body else base
        self.location.replace_state(url)
        return url


__all__ = [
    "Location",
    "UrlSync",
    "normalize_navigation",
    "parse_fragment",
    "serialize_fragment",
]
