"""
Session routes.

Endpoints
---------
- `GET  /api/ping`   : liveness probe.
- `GET  /api/me`     : ``{ok, loggedIn}`` for the caller's cookie.
- `POST /api/login`  : check the admin password, set the session cookie.
- `POST /api/logout` : forget the session and expire the cookie.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from castimeline.api.routers.deps import get_settings
from castimeline.api.schemas import LoginRequest
from castimeline.api.sessions import (
    SESSION_COOKIE,
    SESSION_MAX_AGE,
    SessionStore,
    get_session_store,
)
from castimeline.core.settings import Settings, get_logger

router = APIRouter(prefix="/api", tags=["Session"])

logger = get_logger("castimeline.api.auth")


@router.get("/ping")
async def ping() -> dict[str, bool]:
    return {"ok": True}


@router.get("/me")
async def me(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    return {"ok": True, "loggedIn": sessions.is_valid(request.cookies.get(SESSION_COOKIE))}


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
    sessions: SessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    if not body.password or body.password != settings.admin_password:
        logger.info("Rejected login attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect password.")
    token = sessions.create()
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=SESSION_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=False,
    )
    return {"ok": True}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    sessions: SessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    sessions.drop(request.cookies.get(SESSION_COOKIE))
    response.delete_cookie(SESSION_COOKIE, path="/", httponly=True, samesite="lax")
    return {"ok": True}


__all__ = ["router"]
