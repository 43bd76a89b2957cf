# tests/test_reconcile.py
"""
Tests for update polling, the publish watch and the notification surface.

Scope
-----
1.  **Update poll**: skipped before the first load and while edits are pending;
    a signature mismatch notifies and reloads after one second.
2.  **Publish watch**: bounded attempts, reload once the published signature
    is served.
3.  **Fetch failures**: logged and ignored, the next tick tries again.
4.  **Notifier**: toast auto-hide and sticky error statuses.
"""

from __future__ import annotations

from typing import Any

import pytest

from castimeline.core.contracts.item import TimelineDataset
from castimeline.core.errors import NetworkFailure
from castimeline.core.notify import Notice, Notifier
from castimeline.core.reconcile import (
    PUBLIC_SITE_UPDATED,
    PUBLISH_POLL_ATTEMPTS,
    UPDATES_DETECTED,
    UpdateReconciler,
)
from castimeline.core.scheduler import ManualScheduler


class FakeSource:
    """Serves whatever dataset the test sets; counts fetches."""

    def __init__(self, last_updated: str = "2024-02-11", count: int = 4) -> None:
        self.fetches = 0
        self.failing = False
        self.set(last_updated, count)

    def set(self, last_updated: str, count: int) -> None:
        self.dataset = TimelineDataset.model_validate(
            {
                "lastUpdated": last_updated,
                "items": [{"id": f"e{i}", "date": "2023-01-01"} for i in range(count)],
            }
        )

    def fetch(self) -> TimelineDataset:
        self.fetches += 1
        if self.failing:
            raise NetworkFailure("offline")
        return self.dataset


class Harness:
    def __init__(self, scheduler: ManualScheduler) -> None:
        self.source = FakeSource()
        self.loaded = True
        self.pending = False
        self.messages: list[str] = []
        self.reloads = 0
        self.reconciler = UpdateReconciler(
            scheduler,
            fetch=self.source.fetch,
            has_pending_edits=lambda: self.pending,
            is_loaded=lambda: self.loaded,
            notify=self.messages.append,
            reload=self._reload,
        )
        self.reconciler.capture(self.source.dataset)

    def _reload(self) -> None:
        self.reloads += 1


@pytest.fixture  # type: ignore[misc]
def harness(scheduler: ManualScheduler) -> Harness:
    return Harness(scheduler)


# --------------------------------------------------------------------------- #
# Update poll
# --------------------------------------------------------------------------- #


def test_capture_records_signature(harness: Harness) -> None:
    assert harness.reconciler.current_signature == "2024-02-11|4"


def test_unchanged_data_does_nothing(harness: Harness) -> None:
    assert harness.reconciler.check_for_updates() is False
    assert harness.messages == []


def test_mismatch_notifies_then_reloads(harness: Harness, scheduler: ManualScheduler) -> None:
    harness.source.set("2024-03-01", 5)

    assert harness.reconciler.check_for_updates() is True
    assert harness.messages == [UPDATES_DETECTED]
    assert harness.reconciler.reload_scheduled is True

    scheduler.advance(0.5)
    assert harness.reloads == 0
    scheduler.advance(0.5)
    assert harness.reloads == 1
    assert harness.reconciler.reload_scheduled is False


def test_poll_is_skipped_with_pending_edits(harness: Harness) -> None:
    harness.source.set("2024-03-01", 5)
    harness.pending = True
    assert harness.reconciler.check_for_updates() is False
    assert harness.source.fetches == 0


def test_poll_is_skipped_before_first_load(harness: Harness) -> None:
    harness.loaded = False
    assert harness.reconciler.check_for_updates() is False
    assert harness.source.fetches == 0


def test_fetch_failures_are_ignored(harness: Harness) -> None:
    harness.source.failing = True
    assert harness.reconciler.check_for_updates() is False
    assert harness.messages == []


def test_polling_runs_on_interval(harness: Harness, scheduler: ManualScheduler) -> None:
    harness.reconciler.start_update_polling(120)
    scheduler.advance(119)
    assert harness.source.fetches == 0
    scheduler.advance(1)
    assert harness.source.fetches == 1
    scheduler.advance(120)
    assert harness.source.fetches == 2

    harness.reconciler.stop_update_polling()
    scheduler.advance(600)
    assert harness.source.fetches == 2


def test_reset_current_accepts_payloads(harness: Harness) -> None:
    harness.reconciler.reset_current({"lastUpdated": "2025-01-01", "items": [{}, {}]})
    assert harness.reconciler.current_signature == "2025-01-01|2"


# --------------------------------------------------------------------------- #
# Publish watch
# --------------------------------------------------------------------------- #


def _published(last_updated: str, count: int) -> dict[str, Any]:
    return {"lastUpdated": last_updated, "items": [{"id": str(i)} for i in range(count)]}


def test_publish_watch_reloads_when_signature_served(
    harness: Harness, scheduler: ManualScheduler
) -> None:
    harness.reconciler.watch_publish(_published("2024-05-01", 3))
    assert harness.reconciler.publish_signature == "2024-05-01|3"
    assert harness.reconciler.watching_publish is True

    scheduler.advance(20)
    assert harness.source.fetches == 2
    assert harness.messages == []

    harness.source.set("2024-05-01", 3)
    scheduler.advance(10)
    assert harness.messages == [PUBLIC_SITE_UPDATED]
    scheduler.advance(1)
    assert harness.reloads == 1
    assert harness.reconciler.watching_publish is False


def test_publish_watch_gives_up_after_attempts(
    harness: Harness, scheduler: ManualScheduler
) -> None:
    harness.reconciler.watch_publish(_published("2024-05-01", 3))
    scheduler.advance(10 * (PUBLISH_POLL_ATTEMPTS + 5))
    assert harness.source.fetches == PUBLISH_POLL_ATTEMPTS
    assert harness.reloads == 0
    assert harness.reconciler.watching_publish is False


def test_publish_watch_survives_fetch_failures(
    harness: Harness, scheduler: ManualScheduler
) -> None:
    harness.source.failing = True
    harness.reconciler.watch_publish(_published("2024-05-01", 3), attempts=3, interval=5)
    scheduler.advance(10)
    harness.source.failing = False
    harness.source.set("2024-05-01", 3)
    scheduler.advance(5)
    assert harness.messages == [PUBLIC_SITE_UPDATED]


# --------------------------------------------------------------------------- #
# Notifier
# --------------------------------------------------------------------------- #


def test_toast_hides_after_six_seconds(scheduler: ManualScheduler) -> None:
    notifier = Notifier(scheduler)
    notifier.show_toast("hello")
    scheduler.advance(5)
    notifier.show_toast("again")
    scheduler.advance(5)
    assert notifier.toast == Notice("again")
    scheduler.advance(1)
    assert notifier.toast is None


def test_status_errors_stick_and_successes_hide(scheduler: ManualScheduler) -> None:
    notifier = Notifier(scheduler)
    seen: list[tuple[str, str]] = []
    notifier.subscribe(lambda channel, notice: seen.append((channel, notice.message)))

    notifier.set_status("Event added!", hide_after=2.0)
    notifier.set_status("Incorrect password.", error=True)
    scheduler.advance(10)
    assert notifier.status == Notice("Incorrect password.", True)

    notifier.set_status("Exported.", hide_after=4.0)
    scheduler.advance(4)
    assert notifier.status is None
    assert seen[0] == ("status", "Event added!")
