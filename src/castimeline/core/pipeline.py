"""
Merge & filter pipeline for the visible timeline.

Every function here is pure: inputs are never mutated and a fresh list is
returned. The full pipeline is

    base (minus tombstones) + custom  ->  category filter  ->  text search  ->  sort

The merge order (base first, custom appended) only matters for ties: the sort
is stable, so items sharing a date keep base-then-custom order in both
directions.

Invalid dates
-------------
Items whose `date` does not parse sort as the earliest possible instant, so
they lead an ascending timeline and trail a descending one.
"""

from __future__ import annotations

import math
from collections.abc import Collection, Iterable, Sequence
from datetime import date
from typing import Any

from castimeline.core.contracts.item import ALL_FILTER, DEFAULT_SCHOOL, TimelineItem


def build_visible_items(
    base: Iterable[TimelineItem],
    custom: Iterable[TimelineItem],
    deleted_ids: Collection[str],
) -> list[TimelineItem]:
    """Base items without tombstoned ids, followed by every custom item."""
    deleted = set(deleted_ids)
    return [item for item in base if item.id not in deleted] + list(custom)


def filter_by_category(items: Iterable[TimelineItem], name: str) -> list[TimelineItem]:
    """Keep items tagged with ``name`` (exact match); ``"All"`` keeps everything."""
    if name == ALL_FILTER:
        return list(items)
    return [item for item in items if name in item.categories]


def normalize_query(query: str | None) -> str:
    return (query or "").strip().casefold()


def search_items(items: Iterable[TimelineItem], query: str | None) -> list[TimelineItem]:
    """Keep items whose title/summary/details/keywords contain ``query``."""
    needle = normalize_query(query)
    if not needle:
        return list(items)
    return [item for item in items if needle in item.searchable_text()]


def date_sort_key(item: TimelineItem) -> float:
    """Epoch seconds of the item date; invalid dates map to ``-inf``."""
    ts = item.timestamp
    return ts.timestamp() if ts is not None else -math.inf


def sort_items(items: Iterable[TimelineItem], order: str) -> list[TimelineItem]:
    """Stable chronological sort; ``"newest"`` is descending, anything else ascending."""
    return sorted(items, key=date_sort_key, reverse=order == "newest")


def filter_and_sort(
    items: Iterable[TimelineItem],
    filter_name: str,
    query: str | None,
    order: str,
) -> list[TimelineItem]:
    """Apply category filter, text search and sort to an already-merged set."""
    return sort_items(search_items(filter_by_category(items, filter_name), query), order)


def derive_visible(
    base: Iterable[TimelineItem],
    custom: Iterable[TimelineItem],
    deleted_ids: Collection[str],
    filter_name: str,
    query: str | None,
    order: str,
) -> list[TimelineItem]:
    """The whole pipeline from the three data sources to display order."""
    return filter_and_sort(build_visible_items(base, custom, deleted_ids), filter_name, query, order)


def build_export_payload(
    items: Sequence[TimelineItem],
    *,
    school: str | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Dataset written by export/publish: normalised items, oldest first."""
    ordered = sort_items(items, "oldest")
    return {
        "school": school or DEFAULT_SCHOOL,
        "lastUpdated": (today or date.today()).isoformat(),
        "items": [item.to_export() for item in ordered],
    }


__all__ = [
    "build_export_payload",
    "build_visible_items",
    "date_sort_key",
    "derive_visible",
    "filter_and_sort",
    "filter_by_category",
    "normalize_query",
    "search_items",
    "sort_items",
]
