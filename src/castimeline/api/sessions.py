"""
In-memory session registry for the authoring server.

Tokens are random UUIDs handed out as the ``kcm_session`` cookie. The store
is volatile: restarting the server logs everybody out.
"""

from __future__ import annotations

import uuid
from typing import ClassVar, Final

SESSION_COOKIE: Final = "kcm_session"
SESSION_MAX_AGE: Final = 60 * 60 * 12


class SessionStore:
    """Set of live session tokens."""

    _instance: ClassVar[SessionStore | None] = None

    def __init__(self) -> None:
        self._tokens: set[str] = set()

    @classmethod
    def get_instance(cls) -> SessionStore:
        """Accessor for the global singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def create(self) -> str:
        token = str(uuid.uuid4())
        self._tokens.add(token)
        return token

    def drop(self, token: str | None) -> None:
        if token:
            self._tokens.discard(token)

    def is_valid(self, token: str | None) -> bool:
        return bool(token) and token in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)


def get_session_store() -> SessionStore:
    """FastAPI dependency returning the global :class:`SessionStore`."""
    return SessionStore.get_instance()


__all__ = ["SESSION_COOKIE", "SESSION_MAX_AGE", "SessionStore", "get_session_store"]
