# tests/test_state.py
"""
Tests for the view state machine.

Scope
-----
1.  **Update path**: every accepted update rewrites the URL and schedules one
    coalesced render per animation frame.
2.  **Atomic validation**: a partial with one bad field changes nothing.
3.  **Hydration**: inbound URL sync never writes the URL back and suppresses
    updates while it runs.
4.  **Scroll-spy channel**: the year anchor updates the URL but never renders.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from castimeline.core.contracts.view import NavigationState
from castimeline.core.scheduler import ManualScheduler
from castimeline.core.state import ViewStateMachine
from castimeline.core.urlsync import Location, UrlSync

PAGE = "file:///site/index.html"


@pytest.fixture  # type: ignore[misc]
def renders() -> list[bool]:
    return []


@pytest.fixture  # type: ignore[misc]
def location() -> Location:
    return Location(PAGE)


@pytest.fixture  # type: ignore[misc]
def machine(scheduler: ManualScheduler, location: Location, renders: list[bool]) -> ViewStateMachine:
    return ViewStateMachine(scheduler=scheduler, url_sync=UrlSync(location), render=renders.append)


def test_update_syncs_url_and_schedules_render(
    machine: ViewStateMachine, scheduler: ManualScheduler, location: Location, renders: list[bool]
) -> None:
    assert machine.update_state(filter="Sustainability") is True
    assert location.href == f"{PAGE}#filter=Sustainability"
    assert machine.revision == 1
    assert machine.render_queued is True
    assert renders == []

    scheduler.run_frame()
    assert renders == [False]
    assert machine.render_queued is False


def test_renders_coalesce_per_frame(
    machine: ViewStateMachine, scheduler: ManualScheduler, renders: list[bool]
) -> None:
    machine.update_state(filter="Community")
    machine.update_state(query="beach")
    machine.update_state(sort="newest")
    scheduler.run_frame()
    scheduler.run_frame()
    assert renders == [False]
    assert machine.revision == 3


def test_invalid_update_changes_nothing(
    machine: ViewStateMachine, scheduler: ManualScheduler, location: Location, renders: list[bool]
) -> None:
    with pytest.raises(ValidationError):
        machine.update_state(query="beach", sort="sideways")

    assert machine.state.query == ""
    assert machine.state.sort == "oldest"
    assert machine.revision == 0
    assert location.href == PAGE
    scheduler.run_frame()
    assert renders == []


def test_unknown_fields_are_rejected(machine: ViewStateMachine) -> None:
    with pytest.raises(KeyError):
        machine.update_state(colour="red")


def test_hydrate_does_not_write_the_url(machine: ViewStateMachine, location: Location) -> None:
    machine.hydrate(NavigationState(filter="Academics", sort="newest", year_anchor="2021"))
    assert machine.state.filter == "Academics"
    assert machine.state.year_anchor == "2021"
    assert location.href == PAGE
    assert machine.hydrating is False


def test_updates_are_suppressed_while_hydrating(
    machine: ViewStateMachine, location: Location, renders: list[bool], scheduler: ManualScheduler
) -> None:
    machine.hydrating = True
    assert machine.update_state(filter="Community") is False
    machine.set_year_anchor("2020")
    machine.hydrating = False

    assert machine.state.filter == "All"
    assert machine.state.year_anchor == ""
    assert location.href == PAGE
    scheduler.run_frame()
    assert renders == []


def test_invalid_hydration_leaves_state_untouched(machine: ViewStateMachine) -> None:
    with pytest.raises(ValidationError):
        machine.hydrate(NavigationState(filter="Sport"))
    assert machine.state.filter == "All"
    assert machine.hydrating is False


def test_year_anchor_updates_url_without_render(
    machine: ViewStateMachine, scheduler: ManualScheduler, location: Location, renders: list[bool]
) -> None:
    machine.set_year_anchor("2023")
    assert machine.state.year_anchor == "2023"
    assert location.fragment == "year=2023"
    assert machine.render_queued is False
    scheduler.run_frame()
    assert renders == []


def test_immediate_render_bypasses_the_frame(
    machine: ViewStateMachine, renders: list[bool]
) -> None:
    machine.request_render(immediate=True)
    assert renders == [True]


def test_reset_navigation_restores_defaults(
    machine: ViewStateMachine, location: Location
) -> None:
    machine.update_state(filter="Creativity", query="art", sort="newest")
    machine.set_year_anchor("2022")

    machine.reset_navigation()

    assert machine.state.navigation() == NavigationState()
    assert location.href == PAGE
