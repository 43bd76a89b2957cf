"""ViewState: the single mutable view model owned by the state machine.

`ViewState` validates on assignment, so an out-of-enumeration `filter` or
`sort` raises instead of ever becoming state. `NavigationState` is the frozen,
URL-relevant slice used by fragment serialisation and hydration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal

from pydantic import BaseModel, ConfigDict, Field

from .item import ALL_FILTER, FilterName, TimelineItem

SortOrder = Literal["oldest", "newest"]
SORT_ORDERS: Final[tuple[str, ...]] = ("oldest", "newest")
DEFAULT_SORT: Final = "oldest"


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Shareable navigation fields: what the URL fragment encodes.

    Attributes
    ----------
    filter : str
        Active category filter, or ``"All"``.
    query : str
        Free-text search string.
    sort : str
        ``"oldest"`` (ascending) or ``"newest"`` (descending).
    year_anchor : str
        Year group last scrolled into view; empty when unset.
    """

    filter: str = ALL_FILTER
    query: str = ""
    sort: str = DEFAULT_SORT
    year_anchor: str = ""


class ViewState(BaseModel):
    """Canonical in-memory view state of the timeline."""

    model_config = ConfigDict(validate_assignment=True)

    items: list[TimelineItem] = Field(default_factory=list, description="Merged visible set")
    filter: FilterName = ALL_FILTER
    query: str = ""
    sort: SortOrder = DEFAULT_SORT
    year_anchor: str = ""
    loaded: bool = False
    error: bool = False

    def navigation(self) -> NavigationState:
        return NavigationState(
            filter=self.filter,
            query=self.query,
            sort=self.sort,
            year_anchor=self.year_anchor,
        )


__all__ = ["DEFAULT_SORT", "NavigationState", "SORT_ORDERS", "SortOrder", "ViewState"]
