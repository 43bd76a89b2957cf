# tests/test_scrollspy.py
"""
Tests for the year-header scroll-spy.

The default band spans 50-60 % of the viewport; a header intersects once at
least 40 % of its height lies inside it. Only changes are reported.
"""

from __future__ import annotations

import pytest

from castimeline.core.scrollspy import HeaderBox, YearObserver


@pytest.fixture  # type: ignore[misc]
def years() -> list[str]:
    return []


@pytest.fixture  # type: ignore[misc]
def observer(years: list[str]) -> YearObserver:
    spy = YearObserver(years.append)
    spy.observe(["2022", "2023"])
    return spy


def test_band_geometry(observer: YearObserver) -> None:
    assert observer.band(0, 1000) == (500, 600)
    assert observer.band(250, 1000) == (750, 850)


def test_first_measurement_reports_every_header(observer: YearObserver, years: list[str]) -> None:
    headers = [HeaderBox("2022", 0, 48), HeaderBox("2023", 520, 48)]
    entries = observer.scroll(headers, 0, 1000)
    assert [(e.year, e.is_intersecting) for e in entries] == [("2022", False), ("2023", True)]
    assert years == ["2023"]
    assert observer.visible == {"2023"}


def test_only_changes_are_reported(observer: YearObserver, years: list[str]) -> None:
    headers = [HeaderBox("2022", 0, 48), HeaderBox("2023", 520, 48)]
    observer.scroll(headers, 0, 1000)
    assert observer.scroll(headers, 10, 1000) == []

    entries = observer.scroll(headers, -500, 1000)
    assert [(e.year, e.is_intersecting) for e in entries] == [("2022", True), ("2023", False)]
    assert years == ["2023", "2022"]
    assert observer.visible == {"2022"}


def test_threshold_applies_to_partial_overlap(years: list[str]) -> None:
    spy = YearObserver(years.append)
    spy.observe(["a", "b"])
    # Band is [500, 600]; "a" has 20/48 inside, "b" only 15/48.
    spy.scroll([HeaderBox("a", 580, 48)], 0, 1000)
    spy.scroll([HeaderBox("b", 585, 48)], 0, 1000)
    assert years == ["a"]


def test_unobserved_headers_are_ignored(years: list[str]) -> None:
    spy = YearObserver(years.append)
    assert spy.scroll([HeaderBox("2023", 520, 48)], 0, 1000) == []

    spy.observe(["2023"])
    spy.disconnect()
    assert spy.observed == ()
    assert spy.scroll([HeaderBox("2023", 520, 48)], 0, 1000) == []
    assert years == []


def test_margins_must_leave_a_band() -> None:
    with pytest.raises(ValueError):
        YearObserver(lambda year: None, top_margin=0.6, bottom_margin=0.4)
