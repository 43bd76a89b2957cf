"""Shared dependencies for the authoring routers."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from castimeline.api.data_store import TimelineFileStore
from castimeline.api.sessions import SESSION_COOKIE, SessionStore, get_session_store
from castimeline.core.settings import Settings


def get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def get_file_store(request: Request) -> TimelineFileStore:
    store: TimelineFileStore = request.app.state.file_store
    return store


def require_session(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
) -> str:
    """Return the caller's session token or answer 401."""
    token = request.cookies.get(SESSION_COOKIE)
    if not sessions.is_valid(token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in.")
    return token or ""


__all__ = ["get_file_store", "get_settings", "require_session"]
