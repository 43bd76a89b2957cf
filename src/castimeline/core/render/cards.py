"""
Card and year-group view models.

The renderer never formats items inline; it first projects the sorted item
sequence into immutable view models:

- :class:`MediaChip` : one image/video/link indicator on a card.
- :class:`CardView`  : everything a card displays.
- :class:`YearGroup` : a year header plus its cards.

Groups follow first-encounter order of the (already sorted) sequence, so a
descending sort yields descending groups without any numeric year ordering.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final, Literal

from castimeline.core.contracts.item import TimelineItem, parse_item_date

MediaKind = Literal["image", "video", "link"]

MAX_MEDIA_CHIPS: Final = 2
UNDATED_LABEL: Final = "Undated"
INVALID_DATE: Final = "Invalid Date"

_MONTHS_GB = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sept", "Oct", "Nov", "Dec")
_MONTHS_US = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_date(value: str, locale: str = "en-GB") -> str:
    """Day, abbreviated month and year in the given locale (``en-GB`` or ``en-US``)."""
    parsed = parse_item_date(value)
    if parsed is None:
        return INVALID_DATE
    if locale == "en-US":
        return f"{_MONTHS_US[parsed.month - 1]} {parsed.day}, {parsed.year}"
    return f"{parsed.day} {_MONTHS_GB[parsed.month - 1]} {parsed.year}"


@dataclass(frozen=True, slots=True)
class MediaChip:
    kind: MediaKind
    label: str
    url: str


@dataclass(frozen=True, slots=True)
class CardView:
    """Display model of one timeline card.

    Attributes
    ----------
    media : tuple[MediaChip, ...]
        At most two indicators, images before videos before links.
    overflow : int
        Media entries not shown as chips (rendered as ``+N``); 0 hides the chip.
    deletable : bool
        True when the viewer holds an authorised edit session.
    """

    id: str
    year_label: str
    title: str
    date_label: str
    summary: str
    categories: tuple[str, ...]
    color: str
    sustainability: bool
    media: tuple[MediaChip, ...]
    overflow: int
    deletable: bool


@dataclass(frozen=True, slots=True)
class YearGroup:
    label: str
    cards: tuple[CardView, ...]


def media_pool(item: TimelineItem) -> list[MediaChip]:
    """Every media entry of an item in indicator priority order."""
    pool: list[MediaChip] = []
    many_images = len(item.images) > 1
    for index, src in enumerate(item.images, start=1):
        pool.append(MediaChip("image", f"Image {index}" if many_images else "Image", src))
    for index, url in enumerate(item.videos, start=1):
        pool.append(MediaChip("video", f"Video {index}", url))
    for link in item.links:
        pool.append(MediaChip("link", link.label or "Link", link.url))
    return pool


def summarize_media(item: TimelineItem) -> tuple[tuple[MediaChip, ...], int]:
    """Visible media chips and the overflow count for a card."""
    pool = media_pool(item)
    visible = tuple(pool[:MAX_MEDIA_CHIPS])
    return visible, len(pool) - len(visible)


def year_label(item: TimelineItem) -> str:
    return str(item.year) if item.year is not None else UNDATED_LABEL


def build_card(item: TimelineItem, *, deletable: bool = False, locale: str = "en-GB") -> CardView:
    media, overflow = summarize_media(item)
    return CardView(
        id=item.id,
        year_label=year_label(item),
        title=item.title,
        date_label=format_date(item.date, locale),
        summary=item.summary,
        categories=tuple(item.categories),
        color=item.color,
        sustainability=item.is_sustainability,
        media=media,
        overflow=overflow,
        deletable=deletable,
    )


def group_by_year(
    items: Iterable[TimelineItem],
    *,
    deletable: bool = False,
    locale: str = "en-GB",
) -> tuple[YearGroup, ...]:
    """Bucket cards by year in first-encounter order."""
    buckets: dict[str, list[CardView]] = {}
    for item in items:
        card = build_card(item, deletable=deletable, locale=locale)
        buckets.setdefault(card.year_label, []).append(card)
    return tuple(YearGroup(label, tuple(cards)) for label, cards in buckets.items())


__all__ = [
    "CardView",
    "INVALID_DATE",
    "MAX_MEDIA_CHIPS",
    "MediaChip",
    "UNDATED_LABEL",
    "YearGroup",
    "build_card",
    "format_date",
    "group_by_year",
    "media_pool",
    "summarize_media",
]
