"""Timeline content contracts: items, datasets and the category enumeration.

Two Pydantic v2 models describe the authoritative payload:

- `TimelineItem`    : one dated CAS activity. Frozen once fetched; a reload
  replaces items wholesale instead of mutating them.
- `TimelineDataset` : the `{school, lastUpdated, items}` envelope served by the
  static site, the local server and accepted by the publish worker.

Date semantics
--------------
`date` keeps the raw ISO-8601 string. A date-only value is midnight UTC of
that day, a full timestamp is honoured (naive timestamps are read as UTC) and
anything else is an invalid date; a missing `date` reads as empty, hence
invalid. `year` is cached from `date` when the payload omits it or carries
something that is not a year, and is ``None`` for invalid dates.

A dataset skips (and logs) entries that still fail validation, such as an
item without an `id`, so one bad entry never hides the rest of the timeline.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any, Final, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from castimeline.core.settings import get_logger

logger = get_logger("castimeline.contracts")

# ---- Fixed enumerations -----------------------------------------------------

CATEGORIES: Final[tuple[str, ...]] = (
    "Sustainability",
    "Achievements",
    "Community",
    "Facilities",
    "Academics",
    "Creativity",
)
ALL_FILTER: Final = "All"
FILTERS: Final[tuple[str, ...]] = (ALL_FILTER, *CATEGORIES)

FilterName = Literal[
    "All",
    "Sustainability",
    "Achievements",
    "Community",
    "Facilities",
    "Academics",
    "Creativity",
]

SUSTAINABILITY: Final = "Sustainability"

CATEGORY_COLORS: Final[dict[str, str]] = {
    "Sustainability": "#28a745",
    "Achievements": "#ed6c75",
    "Community": "#143256",
    "Facilities": "#59cbe8",
    "Academics": "#f4b400",
    "Creativity": "#b871f2",
}
DEFAULT_CATEGORY_COLOR: Final = "#143256"
DEFAULT_SCHOOL: Final = "King's College Murcia"


def parse_item_date(value: str | None) -> datetime | None:
    """Parse an item date string into an aware UTC datetime, or ``None``."""
    if not value:
        return None
    raw = str(value).strip()
    try:
        if len(raw) == 10:
            day = date.fromisoformat(raw)
            return datetime(day.year, day.month, day.day, tzinfo=UTC)
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _as_list(value: Any) -> Any:
    """Coerce ``None`` (and other non-list values) to an empty list."""
    if value is None:
        return []
    if isinstance(value, list | tuple):
        return list(value)
    return []


def _is_year(value: Any) -> bool:
    """True for an int or an all-digit string; anything else is re-derived from `date`."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and value.strip().isdigit()


class Link(BaseModel):
    """A labelled external link attached to an item."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    label: str = Field(default="Link")
    url: str = Field(default="")

    @field_validator("label", mode="before")
    @classmethod
    def _default_label(cls, v: Any) -> Any:
        return v or "Link"


class TimelineItem(BaseModel):
    """A single CAS activity on the timeline."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    date: str = ""
    year: int | None = Field(default=None, description="Cached from `date` when omitted")
    title: str = ""
    summary: str = ""
    details: str = ""
    categories: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fill_year(cls, data: Any) -> Any:
        if isinstance(data, dict) and not _is_year(data.get("year")):
            parsed = parse_item_date(data.get("date"))
            data = {**data, "year": parsed.year if parsed else None}
        return data

    @field_validator("categories", "images", "videos", "links", "keywords", mode="before")
    @classmethod
    def _coerce_lists(cls, v: Any) -> Any:
        return _as_list(v)

    @field_validator("id", "date", mode="before")
    @classmethod
    def _coerce_str(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    # ----- Derived views -----------------------------------------------------
    @property
    def timestamp(self) -> datetime | None:
        """Parsed `date`, or ``None`` when it is not a valid date."""
        return parse_item_date(self.date)

    @property
    def is_sustainability(self) -> bool:
        return SUSTAINABILITY in self.categories

    @property
    def color(self) -> str:
        """Tag colour of the first category (uncategorised cards use the default)."""
        if not self.categories:
            return DEFAULT_CATEGORY_COLOR
        return CATEGORY_COLORS.get(self.categories[0], DEFAULT_CATEGORY_COLOR)

    def searchable_text(self) -> str:
        """Case-folded haystack used by full-text search."""
        parts = [self.title, self.summary, self.details, " ".join(self.keywords)]
        return " ".join(parts).casefold()

    def to_export(self) -> dict[str, Any]:
        """Normalised JSON shape written by export and publish."""
        return {
            "id": self.id,
            "date": self.date,
            "year": self.year,
            "title": self.title,
            "summary": self.summary,
            "categories": list(self.categories),
            "sustainability": self.is_sustainability,
            "details": self.details,
            "images": list(self.images),
            "videos": list(self.videos),
            "links": [link.model_dump() for link in self.links],
            "keywords": list(self.keywords),
        }


class TimelineDataset(BaseModel):
    """The authoritative `{school, lastUpdated, items}` payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    school: str = Field(default=DEFAULT_SCHOOL)
    last_updated: str = Field(default="", alias="lastUpdated")
    items: list[TimelineItem] = Field(default_factory=list)

    @field_validator("school", mode="before")
    @classmethod
    def _default_school(cls, v: Any) -> Any:
        return v or DEFAULT_SCHOOL

    @field_validator("last_updated", mode="before")
    @classmethod
    def _default_last_updated(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, v: Any) -> Any:
        items: list[TimelineItem] = []
        for entry in _as_list(v):
            try:
                items.append(TimelineItem.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Skipping malformed timeline item: %s", exc.errors()[0]["msg"])
        return items

    def signature(self) -> str:
        """Cheap change fingerprint: ``"<lastUpdated>|<item count>"``."""
        return build_signature(self.last_updated, len(self.items))

    def to_payload(self) -> dict[str, Any]:
        """Serialise with the wire field names (`lastUpdated`)."""
        return {
            "school": self.school,
            "lastUpdated": self.last_updated,
            "items": [item.to_export() for item in self.items],
        }


def build_signature(last_updated: str | None, count: int) -> str:
    """Return the publish signature for a dataset's timestamp and size.

    Not a hash: two datasets with the same timestamp and item count collide.
    """
    return f"{last_updated or ''}|{count}"


def signature_of_payload(payload: Any) -> str | None:
    """Signature of a raw JSON payload, or ``None`` when there is no payload."""
    if not payload or not isinstance(payload, dict):
        return None
    items = payload.get("items")
    return build_signature(payload.get("lastUpdated"), len(items) if isinstance(items, list) else 0)


__all__ = [
    "ALL_FILTER",
    "CATEGORIES",
    "CATEGORY_COLORS",
    "DEFAULT_CATEGORY_COLOR",
    "DEFAULT_SCHOOL",
    "FILTERS",
    "FilterName",
    "Link",
    "SUSTAINABILITY",
    "TimelineDataset",
    "TimelineItem",
    "build_signature",
    "parse_item_date",
    "signature_of_payload",
]
