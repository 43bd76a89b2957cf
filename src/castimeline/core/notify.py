"""Transient toast and the admin status line."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Final, Literal

from castimeline.core.scheduler import Scheduler, TimerHandle

TOAST_SECONDS: Final = 6.0

Channel = Literal["toast", "status"]
NoticeListener = Callable[[Channel, "Notice"], None]


@dataclass(frozen=True, slots=True)
class Notice:
    message: str
    is_error: bool = False


class Notifier:
    """Holds the visible toast and status text and hides them on timers.

    A toast always disappears after ``toast_seconds``; a newer toast restarts
    the timer. The status line stays until replaced unless ``hide_after`` is
    given, which is how success messages auto-hide while errors stick.
    """

    def __init__(self, scheduler: Scheduler, *, toast_seconds: float = TOAST_SECONDS) -> None:
        self._scheduler = scheduler
        self.toast_seconds = toast_seconds
        self.toast: Notice | None = None
        self.status: Notice | None = None
        self._toast_timer: TimerHandle | None = None
        self._status_timer: TimerHandle | None = None
        self._listeners: list[NoticeListener] = []

    def subscribe(self, listener: NoticeListener) -> None:
        self._listeners.append(listener)

    def _emit(self, channel: Channel, notice: Notice) -> None:
        for listener in list(self._listeners):
            listener(channel, notice)

    def show_toast(self, message: str, *, error: bool = False) -> None:
        if self._toast_timer is not None:
            self._toast_timer.cancel()
        self.toast = Notice(message, error)
        self._toast_timer = self._scheduler.call_later(self.toast_seconds, self.hide_toast)
        self._emit("toast", self.toast)

    def hide_toast(self) -> None:
        self.toast = None
        self._toast_timer = None

    def set_status(self, message: str, *, error: bool = False, hide_after: float | None = None) -> None:
        if self._status_timer is not None:
            self._status_timer.cancel()
            self._status_timer = None
        self.status = Notice(message, error)
        if hide_after is not None:
            self._status_timer = self._scheduler.call_later(hide_after, self.hide_status)
        self._emit("status", self.status)

    def hide_status(self) -> None:
        self.status = None
        self._status_timer = None


__all__ = ["Channel", "Notice", "Notifier", "TOAST_SECONDS"]
