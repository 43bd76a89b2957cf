# tests/conftest.py
"""
Shared fixtures for the CAS timeline test-suite.

The sample dataset is small on purpose: four dated events across three years,
two of them tagged Sustainability, one reachable only through its keywords
(``robotics``) and one carrying enough media to overflow the chip limit.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from castimeline.core.contracts.item import TimelineItem
from castimeline.core.scheduler import ManualScheduler

SAMPLE_PAYLOAD: dict[str, Any] = {
    "school": "King's College Murcia",
    "lastUpdated": "2024-02-11",
    "items": [
        {
            "id": "evt-1",
            "date": "2022-09-15",
            "title": "Beach clean-up",
            "summary": "Year 9 cleared the Mar Menor shoreline.",
            "details": "Over 40 bags of litter collected.",
            "categories": ["Sustainability", "Community"],
            "keywords": ["ocean", "litter"],
        },
        {
            "id": "evt-2",
            "date": "2023-03-01",
            "title": "STEM showcase",
            "summary": "Students presented their builds.",
            "details": "Parents tried the demos.",
            "categories": ["Achievements", "Creativity"],
            "keywords": ["Robotics", "engineering"],
            "links": [{"label": "Photos", "url": "https://example.org/photos"}],
        },
        {
            "id": "evt-3",
            "date": "2023-11-20",
            "title": "Food drive",
            "summary": "Collected food for the local bank.",
            "details": "Every house took part.",
            "categories": ["Sustainability"],
            "images": ["img/a.jpg", "img/b.jpg", "img/c.jpg"],
            "videos": ["https://example.org/v.mp4"],
        },
        {
            "id": "evt-4",
            "date": "2024-02-10",
            "title": "Debate final",
            "summary": "Sixth form reached the regional final.",
            "details": "Motion on renewable energy.",
            "categories": ["Academics"],
        },
    ],
}


@pytest.fixture  # type: ignore[misc]
def payload() -> dict[str, Any]:
    """A fresh deep copy of the sample dataset payload."""
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture  # type: ignore[misc]
def items(payload: dict[str, Any]) -> list[TimelineItem]:
    return [TimelineItem.model_validate(entry) for entry in payload["items"]]


@pytest.fixture  # type: ignore[misc]
def data_file(tmp_path: Path, payload: dict[str, Any]) -> Path:
    """The sample dataset written to ``<tmp>/site/assets/timeline-data.json``."""
    path = tmp_path / "site" / "assets" / "timeline-data.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture  # type: ignore[misc]
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture  # type: ignore[misc]
def make_item() -> Callable[..., TimelineItem]:
    """Factory for one-off items: ``make_item("x", "2023-01-01", categories=[...])``."""

    def _make(item_id: str, date: str, **fields: Any) -> TimelineItem:
        return TimelineItem(id=item_id, date=date, title=fields.pop("title", item_id), **fields)

    return _make
