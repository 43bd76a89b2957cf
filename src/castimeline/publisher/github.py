"""
Minimal GitHub contents API client (read a file SHA, replace the file).

Only the two calls a publish needs are implemented:

- ``GET  /repos/{owner}/{repo}/contents/{path}?ref={branch}`` for the SHA;
- ``PUT  /repos/{owner}/{repo}/contents/{path}`` with base64 content.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

GITHUB_API = "https://api.github.com"
USER_AGENT = "cas-timeline-publisher"


class GitHubError(Exception):
    """A contents API call failed; ``details`` carries the response text."""

    def __init__(self, message: str, details: str = "") -> None:
        super().__init__(message)
        self.details = details


@dataclass(frozen=True, slots=True)
class Committer:
    name: str
    email: str


def contents_path(owner: str, repo: str, path: str) -> str:
    """URL path of a repository file, each segment percent-encoded."""
    segments = [quote(segment, safe="") for segment in path.split("/") if segment]
    return f"/repos/{owner}/{repo}/contents/{'/'.join(segments)}"


def encode_content(payload: Any) -> str:
    """Pretty-printed JSON, UTF-8, base64 encoded."""
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class GitHubContentsClient:
    """Async client bound to one repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = GITHUB_API,
        timeout: float = 20.0,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self._client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": USER_AGENT,
                "Accept": "application/vnd.github+json",
            },
        )

    async def __aenter__(self) -> GitHubContentsClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self._client.aclose()

    async def read_sha(self, path: str, branch: str) -> str:
        response = await self._client.get(
            contents_path(self.owner, self.repo, path), params={"ref": branch}
        )
        if response.is_error:
            raise GitHubError("Failed to read repo file.", response.text)
        sha = response.json().get("sha")
        if not sha:
            raise GitHubError("Missing file sha.")
        return str(sha)

    async def write_json(
        self,
        path: str,
        payload: Any,
        *,
        sha: str,
        branch: str,
        message: str,
        committer: Committer,
    ) -> dict[str, Any]:
        response = await self._client.put(
            contents_path(self.owner, self.repo, path),
            json={
                "message": message,
                "content": encode_content(payload),
                "sha": sha,
                "branch": branch,
                "committer": {"name": committer.name, "email": committer.email},
            },
        )
        if response.is_error:
            raise GitHubError("Failed to write repo file.", response.text)
        body = response.json()
        return body if isinstance(body, dict) else {}


__all__ = [
    "Committer",
    "GITHUB_API",
    "GitHubContentsClient",
    "GitHubError",
    "contents_path",
    "encode_content",
]
