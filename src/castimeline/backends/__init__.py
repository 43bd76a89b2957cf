"""Event-store backends and the publish client.

Two :class:`~castimeline.backends.base.EventBackend` variants exist and one
is picked once at start-up:

- :class:`~castimeline.backends.local.LocalBackend` keeps edits on this
  device until they are published;
- :class:`~castimeline.backends.remote.RemoteBackend` talks to the local
  authoring server, which owns persistence and sessions.
"""

from .base import EventBackend
from .local import LocalBackend
from .publish import PublishClient
from .remote import RemoteBackend

__all__ = ["EventBackend", "LocalBackend", "PublishClient", "RemoteBackend"]
