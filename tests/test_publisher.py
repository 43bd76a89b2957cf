# tests/test_publisher.py
"""
Tests for the publish worker.

Scope
-----
1.  **Happy path**: the worker reads the file SHA, then PUTs the pretty-printed
    dataset to the configured branch with the committer identity.
2.  **Refusals**: bad password, malformed bodies, missing GitHub configuration.
3.  **GitHub failures**: read/write errors and transport errors become 502.
4.  **Routing**: anything but ``POST /publish`` answers 404.

GitHub is replaced with `httpx.MockTransport`.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from castimeline.core.settings import Settings, load_settings
from castimeline.publisher.github import contents_path, encode_content
from castimeline.publisher.worker import create_publish_app

CONTENTS_URL = "/repos/kcm/timeline/contents/assets/timeline-data.json"
DATA = {"school": "King's College Murcia", "lastUpdated": "2024-05-01", "items": [{"id": "evt-1"}]}


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "publish_password": "pw",
        "github_owner": "kcm",
        "github_repo": "timeline",
        "github_token": "ghp_test",
    }
    values.update(overrides)
    return load_settings().model_copy(update=values)


class FakeGitHub:
    """Records requests; answers the SHA lookup and the file update."""

    def __init__(self, *, read_status: int = 200, sha: str | None = "abc123", write_status: int = 200) -> None:
        self.read_status = read_status
        self.sha = sha
        self.write_status = write_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            body = {"sha": self.sha} if self.sha else {}
            return httpx.Response(self.read_status, json=body)
        return httpx.Response(self.write_status, json={"content": {"sha": "def456"}})


def _client(github: Callable[[httpx.Request], httpx.Response], **overrides: Any) -> TestClient:
    app = create_publish_app(_settings(**overrides), transport=httpx.MockTransport(github))
    return TestClient(app)


@pytest.fixture  # type: ignore[misc]
def github() -> FakeGitHub:
    return FakeGitHub()


# --------------------------------------------------------------------------- #
# Happy path
# --------------------------------------------------------------------------- #


def test_publish_commits_the_dataset(github: FakeGitHub) -> None:
    resp = _client(github).post("/publish", json={"password": "pw", "data": DATA})
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"ok": True}

    read, write = github.requests
    assert read.method == "GET"
    assert read.url.path == CONTENTS_URL
    assert read.url.params["ref"] == "main"
    assert read.headers["authorization"] == "Bearer ghp_test"

    body = json.loads(write.content)
    assert write.method == "PUT"
    assert body["sha"] == "abc123"
    assert body["branch"] == "main"
    assert body["message"] == "Update timeline data"
    assert body["committer"] == {
        "name": "CAS Timeline Bot",
        "email": "timeline-bot@users.noreply.github.com",
    }
    assert json.loads(base64.b64decode(body["content"])) == DATA


def test_publish_honours_branch_and_path(github: FakeGitHub) -> None:
    client = _client(github, github_branch="gh-pages", github_path="site/data v2.json")
    assert client.post("/publish", json={"password": "pw", "data": DATA}).status_code == 200
    assert github.requests[0].url.raw_path.startswith(b"/repos/kcm/timeline/contents/site/data%20v2.json")
    assert json.loads(github.requests[1].content)["branch"] == "gh-pages"


# --------------------------------------------------------------------------- #
# Refusals
# --------------------------------------------------------------------------- #


def test_wrong_password_is_401(github: FakeGitHub) -> None:
    resp = _client(github).post("/publish", json={"password": "nope", "data": DATA})
    assert resp.status_code == 401
    assert resp.json() == {"ok": False, "error": "Unauthorized."}
    assert github.requests == []


def test_unset_password_refuses_everyone(github: FakeGitHub) -> None:
    resp = _client(github, publish_password=None).post("/publish", json={"password": "", "data": DATA})
    assert resp.status_code == 401


def test_malformed_bodies_are_400(github: FakeGitHub) -> None:
    client = _client(github)
    invalid = client.post("/publish", content=b"{oops", headers={"content-type": "application/json"})
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid JSON body."

    missing = client.post("/publish", json={"password": "pw", "data": {"school": "x"}})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Missing timeline data."


def test_missing_github_config_is_500(github: FakeGitHub) -> None:
    resp = _client(github, github_token=None).post("/publish", json={"password": "pw", "data": DATA})
    assert resp.status_code == 500
    assert resp.json() == {"ok": False, "error": "Server not configured."}


# --------------------------------------------------------------------------- #
# GitHub failures
# --------------------------------------------------------------------------- #


@pytest.mark.parametrize(  # type: ignore[misc]
    ("fake", "message"),
    [
        (FakeGitHub(read_status=404), "Failed to read repo file."),
        (FakeGitHub(sha=None), "Missing file sha."),
        (FakeGitHub(write_status=409), "Failed to write repo file."),
    ],
)
def test_github_errors_are_502(fake: FakeGitHub, message: str) -> None:
    resp = _client(fake).post("/publish", json={"password": "pw", "data": DATA})
    assert resp.status_code == 502
    assert resp.json()["ok"] is False
    assert resp.json()["error"] == message


def test_github_unreachable_is_502() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    resp = _client(refuse).post("/publish", json={"password": "pw", "data": DATA})
    assert resp.status_code == 502
    assert resp.json()["error"] == "GitHub unreachable."


# --------------------------------------------------------------------------- #
# Routing and helpers
# --------------------------------------------------------------------------- #


def test_other_routes_are_404(github: FakeGitHub) -> None:
    client = _client(github)
    for resp in (client.get("/publish"), client.get("/"), client.post("/elsewhere", json={})):
        assert resp.status_code == 404
        assert resp.json() == {"ok": False, "error": "Not found."}


def test_contents_path_encodes_segments() -> None:
    assert contents_path("o", "r", "/a b/c#d.json") == "/repos/o/r/contents/a%20b/c%23d.json"


def test_encode_content_is_pretty_utf8() -> None:
    decoded = base64.b64decode(encode_content({"school": "Múrcia"})).decode("utf-8")
    assert decoded == '{\n  "school": "Múrcia"\n}'
