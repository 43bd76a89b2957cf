# tests/test_api.py
"""
Tests for the local authoring server.

Scope
-----
1.  **Session**: login sets an HttpOnly ``kcm_session`` cookie valid for 12 h,
    ``/api/me`` reflects it, logout forgets it.
2.  **Authoring**: events and deletions require a session, drafts are
    validated, edits land in ``data/`` and show up in ``/api/timeline-data``.
3.  **Uploads**: base64 images stored under ``img/uploads`` and served back.
4.  **Envelope**: every error is ``{ok: false, error}``; oversized bodies get 413.
"""

from __future__ import annotations

import base64
import inspect
import json
import shutil
from pathlib import Path

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from castimeline.api.app import create_app
from castimeline.api.data_store import TimelineFileStore
from castimeline.api.sessions import SESSION_COOKIE
from castimeline.api.uploads import decode_data_url, sanitize_base_name, save_upload
from castimeline.core.contracts.draft import INCOMPLETE_MESSAGE
from castimeline.core.contracts.item import TimelineItem
from castimeline.core.errors import ValidationFailure
from castimeline.core.settings import load_settings

PASSWORD = "letmein"
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode("ascii")

EVENT = {
    "title": "Charity run",
    "date": "2024-04-12",
    "summary": "5k around the campus.",
    "details": "Raised money for the food bank.",
    "categories": ["Community"],
}


@pytest.fixture  # type: ignore[misc]
def site(tmp_path: Path, data_file: Path) -> Path:
    root = tmp_path / "served"
    shutil.copytree(data_file.parent.parent, root)
    (root / "index.html").write_text("<h1>CAS Timeline</h1>", encoding="utf-8")
    return root


@pytest.fixture  # type: ignore[misc]
def client(site: Path) -> TestClient:
    settings = load_settings().model_copy(update={"admin_password": PASSWORD})
    return TestClient(create_app(settings, root=site))


def _login(client: TestClient) -> None:
    resp = client.post("/api/login", json={"password": PASSWORD})
    assert resp.status_code == 200, f"Login failed: {resp.text}"


# --------------------------------------------------------------------------- #
# Session
# --------------------------------------------------------------------------- #


def test_ping(client: TestClient) -> None:
    assert client.get("/api/ping").json() == {"ok": True}


def test_login_sets_session_cookie(client: TestClient) -> None:
    assert client.get("/api/me").json() == {"ok": True, "loggedIn": False}

    resp = client.post("/api/login", json={"password": PASSWORD})
    assert resp.status_code == 200
    header = resp.headers["set-cookie"].lower()
    assert f"{SESSION_COOKIE}=" in header
    assert "httponly" in header
    assert "max-age=43200" in header
    assert "samesite=lax" in header

    assert client.get("/api/me").json() == {"ok": True, "loggedIn": True}


def test_wrong_password_is_401(client: TestClient) -> None:
    resp = client.post("/api/login", json={"password": "guess"})
    assert resp.status_code == 401
    assert resp.json() == {"ok": False, "error": "Incorrect password."}


def test_logout_forgets_the_session(client: TestClient) -> None:
    _login(client)
    assert client.post("/api/logout").json() == {"ok": True}
    assert client.get("/api/me").json()["loggedIn"] is False


# --------------------------------------------------------------------------- #
# Authoring
# --------------------------------------------------------------------------- #


def test_mutations_require_a_session(client: TestClient) -> None:
    for path, body in (
        ("/api/events", EVENT),
        ("/api/delete", {"id": "evt-1"}),
        ("/api/upload-image", {"dataUrl": PNG_DATA_URL, "filename": "a.png"}),
    ):
        resp = client.post(path, json=body)
        assert resp.status_code == 401, f"{path} answered {resp.status_code}"
        assert resp.json() == {"ok": False, "error": "Not logged in."}


def test_add_event_persists_and_merges(client: TestClient, site: Path) -> None:
    _login(client)
    resp = client.post("/api/events", json=EVENT)
    assert resp.status_code == 200, resp.text
    item = resp.json()["item"]
    assert item["id"].startswith("custom-")
    assert item["year"] == 2024

    stored = json.loads((site / "data" / "custom-items.json").read_text(encoding="utf-8"))
    assert [entry["id"] for entry in stored] == [item["id"]]

    data = client.get("/api/timeline-data").json()
    assert data["school"] == "King's College Murcia"
    assert data["lastUpdated"] == "2024-02-11"
    assert [entry["id"] for entry in data["items"]][-1] == item["id"]


def test_incomplete_event_is_400(client: TestClient) -> None:
    _login(client)
    resp = client.post("/api/events", json={**EVENT, "details": ""})
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": INCOMPLETE_MESSAGE}


def test_delete_base_and_custom(client: TestClient, site: Path) -> None:
    _login(client)
    custom_id = client.post("/api/events", json=EVENT).json()["item"]["id"]

    assert client.post("/api/delete", json={"id": "evt-1"}).json() == {"ok": True}
    assert client.post("/api/delete", json={"id": custom_id}).json() == {"ok": True}

    ids = [entry["id"] for entry in client.get("/api/timeline-data").json()["items"]]
    assert ids == ["evt-2", "evt-3", "evt-4"]
    assert json.loads((site / "data" / "custom-items.json").read_text(encoding="utf-8")) == []
    assert json.loads((site / "data" / "deleted-ids.json").read_text(encoding="utf-8")) == ["evt-1"]


def test_delete_requires_an_id(client: TestClient) -> None:
    _login(client)
    resp = client.post("/api/delete", json={"id": "  "})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing id."


def test_malformed_json_is_400(client: TestClient) -> None:
    resp = client.post(
        "/api/login", content=b"{nope", headers={"content-type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Invalid JSON."}


# --------------------------------------------------------------------------- #
# Uploads and static files
# --------------------------------------------------------------------------- #


def test_upload_is_stored_and_served(client: TestClient, site: Path) -> None:
    _login(client)
    resp = client.post("/api/upload-image", json={"dataUrl": PNG_DATA_URL, "filename": "Sports Day.PNG"})
    assert resp.status_code == 200, resp.text
    url = resp.json()["url"]
    assert url.startswith("/img/uploads/sports-day-")
    assert url.endswith(".png")
    assert (site / url.lstrip("/")).read_bytes() == b"\x89PNG fake"

    served = client.get(url)
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake"


def test_non_image_upload_is_rejected(client: TestClient) -> None:
    _login(client)
    resp = client.post(
        "/api/upload-image", json={"dataUrl": "data:text/plain;base64,aGk=", "filename": "a.txt"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Only image uploads are supported."


def test_static_site_is_served(client: TestClient) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert "CAS Timeline" in resp.text
    assert client.get("/assets/timeline-data.json").json()["lastUpdated"] == "2024-02-11"


def test_oversized_body_is_413(site: Path) -> None:
    client = TestClient(create_app(load_settings(), root=site, max_body_bytes=64))
    resp = client.post("/api/login", json={"password": "x" * 200})
    assert resp.status_code == 413
    assert resp.json() == {"ok": False, "error": "Request too large."}


# --------------------------------------------------------------------------- #
# Helpers behind the routes
# --------------------------------------------------------------------------- #


def test_file_store_skips_bad_entries(site: Path) -> None:
    (site / "data").mkdir()
    (site / "data" / "custom-items.json").write_text(
        json.dumps([{"id": "c1", "date": "2024-01-01"}, {"title": "broken"}]), encoding="utf-8"
    )
    (site / "data" / "deleted-ids.json").write_text("{not json", encoding="utf-8")

    store = TimelineFileStore(site)
    assert [item.id for item in store.custom_items()] == ["c1"]
    assert store.deleted_ids() == []
    assert len(store.timeline_data()["items"]) == 5


def test_file_store_delete_is_idempotent(site: Path) -> None:
    store = TimelineFileStore(site)
    store.add_item(TimelineItem(id="c1", date="2024-01-01"))
    assert store.delete("c1") == "custom"
    assert store.delete("evt-2") == "tombstone"
    assert store.delete("evt-2") == "tombstone"
    assert store.deleted_ids() == ["evt-2"]


def test_sanitize_base_name() -> None:
    assert sanitize_base_name("My Photo (1).JPG") == "my-photo-1"
    assert sanitize_base_name("") == "upload"
    assert sanitize_base_name("???.png") == "upload"
    assert len(sanitize_base_name("a" * 200)) == 60


def test_decode_data_url_errors() -> None:
    with pytest.raises(ValidationFailure, match="Expected a base64 data URL."):
        decode_data_url("https://example.org/a.png")
    with pytest.raises(ValidationFailure, match="Only image uploads are supported."):
        decode_data_url("data:application/pdf;base64,aGk=")


def test_save_upload_extension_fallbacks(tmp_path: Path) -> None:
    heic = save_upload(tmp_path, "data:image/heic;base64,aGk=", "holiday.heic", now_ms=1)
    assert heic.startswith("/img/uploads/holiday-1-")
    assert heic.endswith(".heic")

    bare = save_upload(tmp_path, "data:image/x-unknown;base64,aGk=", None, now_ms=2)
    assert bare.startswith("/img/uploads/upload-2-")
    assert bare.endswith(".png")


def test_disk_handlers_run_in_the_threadpool(client: TestClient) -> None:
    endpoints = {
        route.path: route.endpoint
        for route in client.app.routes
        if isinstance(route, APIRoute)
    }
    for path in ("/api/timeline-data", "/api/events", "/api/delete", "/api/upload-image"):
        assert not inspect.iscoroutinefunction(endpoints[path]), f"{path} blocks the event loop"


def test_asgi_entry_point_builds_app() -> None:
    from castimeline.api import server

    assert server.app.title == "CAS Timeline authoring server"
    assert any(getattr(route, "path", "") == "/api/ping" for route in server.app.routes)
