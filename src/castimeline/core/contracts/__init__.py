"""Typed contracts for timeline content and view state.

- `item`  : TimelineItem, TimelineDataset and the category enumeration.
- `draft` : EventDraft, the authoring-path payload and its form helpers.
- `view`  : ViewState and NavigationState.
"""

from __future__ import annotations

__all__ = ["__doc__"]
