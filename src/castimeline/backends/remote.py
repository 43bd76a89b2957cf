"""
Server-mode backend: an httpx client for the local authoring server.

The server owns persistence and sessions; this client only keeps the session
cookie (inside the :class:`httpx.Client` cookie jar) and a cached copy of the
"logged in" flag from ``/api/me``.

Endpoints used
--------------
- ``GET  /api/timeline-data``  merged dataset
- ``GET  /api/me``             ``{ok, loggedIn}``
- ``POST /api/login``          ``{password}`` -> sets the session cookie
- ``POST /api/logout``
- ``POST /api/events``         draft -> ``{ok, item}``
- ``POST /api/delete``         ``{id}`` -> ``{ok}``
- ``POST /api/upload-image``   ``{dataUrl, filename}`` -> ``{ok, url}``
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from castimeline.core.contracts.draft import EventDraft
from castimeline.core.contracts.item import TimelineDataset, TimelineItem
from castimeline.core.errors import AuthorizationFailure, NetworkFailure, ValidationFailure
from castimeline.core.settings import get_logger

from .base import BackendMode

logger = get_logger("castimeline.backends.remote")

NOT_LOGGED_IN = "Unable to save to server. Are you logged in?"


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return fallback


class RemoteBackend:
    """Event store backed by the authoring server's JSON API."""

    mode: BackendMode = "server"

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)
        self._authorized = False

    def close(self) -> None:
        self._client.close()

    # ------------------------------- transport ------------------------------

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> httpx.Response:
        try:
            return self._client.request(method, path, json=body)
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"{method} {path} failed: {exc}") from exc

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkFailure(f"{response.request.url} did not return JSON") from exc
        return body if isinstance(body, dict) else {}

    def _check_mutation(self, response: httpx.Response) -> dict[str, Any]:
        if response.status_code == 401:
            self._authorized = False
            raise AuthorizationFailure(_error_message(response, NOT_LOGGED_IN))
        if response.status_code == 400:
            raise ValidationFailure(_error_message(response, "Invalid request."))
        if response.is_error:
            raise NetworkFailure(_error_message(response, "Unable to save to server."))
        body = self._json(response)
        if not body.get("ok"):
            raise NetworkFailure(str(body.get("error") or "Unable to save to server."))
        return body

    # ------------------------------- dataset --------------------------------

    def fetch_dataset(self) -> TimelineDataset:
        response = self._request("GET", "/api/timeline-data")
        if response.is_error:
            raise NetworkFailure(f"Timeline data request failed ({response.status_code})")
        try:
            return TimelineDataset.model_validate(self._json(response))
        except ValidationError as exc:
            raise NetworkFailure(f"Malformed timeline data: {exc.error_count()} errors") from exc

    def visible_items(self, base: Sequence[TimelineItem]) -> list[TimelineItem]:
        # The server already merged its own edits.
        return list(base)

    def has_pending_edits(self) -> bool:
        return False

    def clear_local_edits(self) -> None:
        return None

    # ------------------------------- session --------------------------------

    def is_authorized(self) -> bool:
        return self._authorized

    def refresh_authorization(self) -> bool:
        """Ask ``/api/me``; on failure keep the cached flag."""
        try:
            response = self._request("GET", "/api/me")
            body = self._json(response) if response.is_success else {}
        except NetworkFailure as exc:
            logger.info("Session check failed: %s", exc)
            return self._authorized
        if body.get("ok"):
            self._authorized = bool(body.get("loggedIn"))
        return self._authorized

    def login(self, password: str) -> bool:
        password = (password or "").strip()
        if not password:
            return False
        try:
            response = self._request("POST", "/api/login", {"password": password})
        except NetworkFailure as exc:
            logger.warning("Login request failed: %s", exc)
            return False
        self._authorized = response.is_success and bool(self._json(response).get("ok"))
        return self._authorized

    def logout(self) -> None:
        try:
            self._request("POST", "/api/logout")
        except NetworkFailure as exc:
            logger.info("Logout request failed: %s", exc)
        finally:
            self._authorized = False

    # ------------------------------- authoring ------------------------------

    def create_event(self, draft: EventDraft) -> TimelineItem:
        draft.require_complete()
        response = self._request("POST", "/api/events", draft.model_dump(mode="json"))
        body = self._check_mutation(response)
        try:
            return TimelineItem.model_validate(body.get("item") or {})
        except ValidationError as exc:
            raise NetworkFailure(f"Malformed saved event: {exc.error_count()} errors") from exc

    def delete_event(self, item_id: str) -> None:
        response = self._request("POST", "/api/delete", {"id": item_id})
        self._check_mutation(response)

    def upload_image(self, data_url: str, filename: str) -> str | None:
        """Upload a data URL; ``None`` means keep the data URL inline."""
        if not data_url:
            return None
        try:
            response = self._request(
                "POST", "/api/upload-image", {"dataUrl": data_url, "filename": filename}
            )
            body = self._json(response) if response.is_success else {}
        except NetworkFailure as exc:
            logger.info("Image upload failed, keeping data URL: %s", exc)
            return None
        url = body.get("url")
        return url if body.get("ok") and isinstance(url, str) else None


__all__ = ["NOT_LOGGED_IN", "RemoteBackend"]
