"""
Update/publish reconciliation: noticing when the authoritative dataset moved.

Two poll loops compare cheap dataset signatures (``lastUpdated|count``):

- The update poll runs on a long interval. It is skipped entirely while local
  edits are pending, so background changes never overwrite unpublished work.
  On a mismatch against the signature captured at the last load it notifies
  and reloads shortly after.
- The publish watch starts after a successful publish. It polls faster, for a
  bounded number of attempts, until the authoritative source serves the
  signature that was just published, then notifies and reloads.

Fetch failures inside either loop are logged and ignored; the next tick
simply tries again.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Final

from castimeline.core.contracts.item import TimelineDataset, signature_of_payload
from castimeline.core.errors import NetworkFailure
from castimeline.core.scheduler import Scheduler, TimerHandle
from castimeline.core.settings import get_logger

UPDATE_POLL_SECONDS: Final = 120.0
PUBLISH_POLL_ATTEMPTS: Final = 12
PUBLISH_POLL_SECONDS: Final = 10.0
RELOAD_DELAY_SECONDS: Final = 1.0

UPDATES_DETECTED = "New updates detected. Reloading…"
PUBLIC_SITE_UPDATED = "Public site updated. Reloading…"

logger = get_logger("castimeline.reconcile")


class UpdateReconciler:
    """Signature bookkeeping plus the update and publish poll loops."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        fetch: Callable[[], TimelineDataset],
        has_pending_edits: Callable[[], bool],
        is_loaded: Callable[[], bool],
        notify: Callable[[str], None],
        reload: Callable[[], None],
        reload_delay: float = RELOAD_DELAY_SECONDS,
    ) -> None:
        self._scheduler = scheduler
        self._fetch = fetch
        self._has_pending_edits = has_pending_edits
        self._is_loaded = is_loaded
        self._notify = notify
        self._reload = reload
        self.reload_delay = reload_delay
        self.current_signature: str | None = None
        self.publish_signature: str | None = None
        self.reload_scheduled = False
        self._update_timer: TimerHandle | None = None
        self._publish_timer: TimerHandle | None = None
        self._attempts_left = 0

    # ------------------------------- signatures -----------------------------

    def capture(self, dataset: TimelineDataset) -> str:
        """Remember the signature of a freshly loaded dataset."""
        self.current_signature = dataset.signature()
        return self.current_signature

    def reset_current(self, dataset: TimelineDataset | dict[str, Any]) -> None:
        """Re-baseline after local edits are cleared (dataset or raw payload)."""
        if isinstance(dataset, TimelineDataset):
            self.current_signature = dataset.signature()
        else:
            self.current_signature = signature_of_payload(dataset)

    def _schedule_reload(self, message: str) -> None:
        self._notify(message)
        self.reload_scheduled = True
        self._scheduler.call_later(self.reload_delay, self._do_reload)

    def _do_reload(self) -> None:
        self.reload_scheduled = False
        self._reload()

    def _fetch_signature(self) -> str | None:
        try:
            return self._fetch().signature()
        except NetworkFailure as exc:
            logger.info("Update check skipped: %s", exc)
            return None

    # ------------------------------- update poll ----------------------------

    def start_update_polling(self, interval: float = UPDATE_POLL_SECONDS) -> TimerHandle:
        self.stop_update_polling()
        self._update_timer = self._scheduler.call_every(interval, self.check_for_updates)
        return self._update_timer

    def stop_update_polling(self) -> None:
        if self._update_timer is not None:
            self._update_timer.cancel()
            self._update_timer = None

    def check_for_updates(self) -> bool:
        """One update-poll tick; True when a reload was scheduled."""
        if not self._is_loaded() or self._has_pending_edits():
            return False
        signature = self._fetch_signature()
        if signature and self.current_signature and signature != self.current_signature:
            logger.info("Dataset changed (%s -> %s)", self.current_signature, signature)
            self._schedule_reload(UPDATES_DETECTED)
            return True
        return False

    # ------------------------------- publish watch --------------------------

    @property
    def watching_publish(self) -> bool:
        return self._publish_timer is not None and not self._publish_timer.cancelled

    def watch_publish(
        self,
        payload: dict[str, Any],
        *,
        attempts: int = PUBLISH_POLL_ATTEMPTS,
        interval: float = PUBLISH_POLL_SECONDS,
    ) -> None:
        """Wait for the authoritative source to serve ``payload``."""
        self.publish_signature = signature_of_payload(payload)
        if not self.publish_signature:
            return
        if self._publish_timer is not None:
            self._publish_timer.cancel()
        self._attempts_left = attempts
        self._publish_interval = interval
        self._publish_timer = self._scheduler.call_later(interval, self._poll_publish)

    def _poll_publish(self) -> None:
        self._publish_timer = None
        self._attempts_left -= 1
        signature = self._fetch_signature()
        if signature and signature == self.publish_signature:
            self._schedule_reload(PUBLIC_SITE_UPDATED)
            return
        if self._attempts_left > 0:
            self._publish_timer = self._scheduler.call_later(
                self._publish_interval, self._poll_publish
            )


__all__ = [
    "PUBLIC_SITE_UPDATED",
    "PUBLISH_POLL_ATTEMPTS",
    "PUBLISH_POLL_SECONDS",
    "RELOAD_DELAY_SECONDS",
    "UPDATES_DETECTED",
    "UPDATE_POLL_SECONDS",
    "UpdateReconciler",
]
