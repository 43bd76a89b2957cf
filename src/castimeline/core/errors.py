"""Failure taxonomy shared by the timeline engine, backends and servers.

Every network-origin failure is raised as one of these types by the backend
that observed it and caught by :class:`castimeline.core.app.TimelineApp`,
which turns it into user-visible state (error banner, status line, toast).
"""

from __future__ import annotations


class TimelineError(Exception):
    """Base class for all expected timeline failures."""


class NetworkFailure(TimelineError):
    """A dataset fetch or backend call could not be completed."""


class ValidationFailure(TimelineError, ValueError):
    """An authoring draft or request payload is missing required fields."""


class AuthorizationFailure(TimelineError):
    """A mutation was attempted without a valid staff session."""


class PublishFailure(TimelineError):
    """The publish endpoint rejected the dataset or could not be reached.

    ``unreachable`` distinguishes transport failures (no answer at all) from a
    structured rejection returned by the worker.
    """

    def __init__(self, message: str, *, unreachable: bool = False) -> None:
        super().__init__(message)
        self.unreachable = unreachable


class StorageUnavailable(TimelineError):
    """The durable local key-value store cannot be read or written."""


__all__ = [
    "AuthorizationFailure",
    "NetworkFailure",
    "PublishFailure",
    "StorageUnavailable",
    "TimelineError",
    "ValidationFailure",
]
