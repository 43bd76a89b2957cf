"""EventDraft: the authoring-path payload for a new timeline event.

A draft is built from the staff authoring form (or a JSON request body on the local
server), checked with :meth:`EventDraft.require_complete` *before* any network
call, and turned into a :class:`TimelineItem` with a fresh id.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from castimeline.core.errors import ValidationFailure

from .item import CATEGORIES, Link, TimelineItem

INCOMPLETE_MESSAGE = "Fill title, date, summary, details, and at least one category."

_LIST_SPLIT = re.compile(r"[\n,]")


def split_list(value: str | None) -> list[str]:
    """Split a textarea value on newlines or commas, dropping blanks."""
    if not value:
        return []
    return [entry.strip() for entry in _LIST_SPLIT.split(value) if entry.strip()]


def parse_links(value: str | None) -> list[Link]:
    """Parse ``label | url`` lines; lines without both parts are dropped."""
    links: list[Link] = []
    for line in (value or "").split("\n"):
        line = line.strip()
        if not line:
            continue
        parts = [part.strip() for part in line.split("|")]
        if len(parts) >= 2 and parts[0] and parts[1]:
            links.append(Link(label=parts[0], url=parts[1]))
    return links


def new_item_id(now_ms: int | None = None) -> str:
    """Return a fresh ``custom-<epoch ms>-<hex8>`` identifier."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"custom-{stamp}-{uuid.uuid4().hex[:8]}"


def _clean_strings(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, list | tuple):
        return [str(x).strip() for x in v if x is not None and str(x).strip()]
    return v


class EventDraft(BaseModel):
    """Fields submitted by staff for a new event."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = ""
    date: str = ""
    summary: str = ""
    details: str = ""
    categories: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    @field_validator("title", "date", "summary", "details", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("categories", "images", "videos", "keywords", mode="before")
    @classmethod
    def _strip_entries(cls, v: Any) -> Any:
        return _clean_strings(v)

    @field_validator("links", mode="before")
    @classmethod
    def _keep_complete_links(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return []
        return [
            link
            for link in v
            if isinstance(link, Link) or (isinstance(link, dict) and link.get("url"))
        ]

    @classmethod
    def from_form(
        cls,
        *,
        title: str = "",
        date: str = "",
        summary: str = "",
        details: str = "",
        categories: list[str] | None = None,
        images: str = "",
        videos: str = "",
        links: str = "",
        keywords: str = "",
    ) -> EventDraft:
        """Build a draft from raw form values (textareas are split into lists)."""
        return cls(
            title=title,
            date=date,
            summary=summary,
            details=details,
            categories=list(categories or []),
            images=split_list(images),
            videos=split_list(videos),
            links=parse_links(links),
            keywords=split_list(keywords),
        )

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        missing = [
            name for name in ("title", "date", "summary", "details") if not getattr(self, name)
        ]
        if not self.categories:
            missing.append("categories")
        return missing

    def require_complete(self) -> EventDraft:
        """Raise :class:`ValidationFailure` unless the draft can be saved."""
        if self.missing_fields():
            raise ValidationFailure(INCOMPLETE_MESSAGE)
        unknown = [c for c in self.categories if c not in CATEGORIES]
        if unknown:
            raise ValidationFailure(f"Unknown category: {', '.join(unknown)}")
        return self

    def with_images(self, extra: list[str]) -> EventDraft:
        """Return a copy with uploaded image URLs appended to `images`."""
        if not extra:
            return self
        return self.model_copy(update={"images": [*self.images, *extra]})

    def to_item(self, item_id: str | None = None) -> TimelineItem:
        """Materialise the draft as a timeline item (year derived from `date`)."""
        return TimelineItem(
            id=item_id or new_item_id(),
            date=self.date,
            title=self.title,
            summary=self.summary,
            details=self.details,
            categories=list(self.categories),
            images=list(self.images),
            videos=list(self.videos),
            links=list(self.links),
            keywords=list(self.keywords),
        )


__all__ = [
    "EventDraft",
    "INCOMPLETE_MESSAGE",
    "new_item_id",
    "parse_links",
    "split_list",
]
