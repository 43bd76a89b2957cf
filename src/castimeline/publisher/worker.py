"""
Publish worker application.

`POST /publish` with ``{password, data}`` replaces the configured repository
file with ``data`` (pretty-printed JSON). Responses:

- 200 ``{ok: true}`` once the commit is written;
- 400 for an unparsable body or ``data`` without an ``items`` list;
- 401 when the password does not match ``PUBLISH_PASSWORD`` (or none is set);
- 500 when the GitHub owner, repo or token are missing;
- 502 when GitHub refuses the read or the write;
- 404 ``{ok: false, error: "Not found."}`` for every other route or method.
"""

from __future__ import annotations

from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from castimeline import __version__
from castimeline.core.settings import Settings, get_logger, load_settings

from .github import Committer, GitHubContentsClient, GitHubError

logger = get_logger("castimeline.publisher")


def _reply(status_code: int, **content: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


def create_publish_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the publish worker; ``transport`` lets tests stand in for GitHub."""
    settings = settings or load_settings()
    app = FastAPI(title="CAS Timeline publish worker", version=__version__, docs_url=None, redoc_url=None)

    origin = (settings.cors_origin or "").strip() or "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=86400,
    )

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (404, 405):
            return _reply(404, ok=False, error="Not found.")
        return _reply(exc.status_code, ok=False, error=str(exc.detail))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Publish worker error")
        return _reply(500, ok=False, error="Server error.")

    @app.post("/publish")
    async def publish(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return _reply(400, ok=False, error="Invalid JSON body.")
        if not isinstance(body, dict):
            body = {}

        password = str(body.get("password") or "")
        if not settings.publish_password or password != settings.publish_password:
            return _reply(401, ok=False, error="Unauthorized.")

        data = body.get("data")
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            return _reply(400, ok=False, error="Missing timeline data.")

        if not settings.github_configured:
            return _reply(500, ok=False, error="Server not configured.")

        path = settings.github_path or "assets/timeline-data.json"
        branch = settings.github_branch or "main"
        async with GitHubContentsClient(
            settings.github_owner or "",
            settings.github_repo or "",
            settings.github_token or "",
            transport=transport,
        ) as github:
            try:
                sha = await github.read_sha(path, branch)
                await github.write_json(
                    path,
                    data,
                    sha=sha,
                    branch=branch,
                    message=settings.github_message,
                    committer=Committer(
                        settings.github_committer_name, settings.github_committer_email
                    ),
                )
            except GitHubError as exc:
                logger.warning("GitHub rejected publish: %s", exc)
                return _reply(502, ok=False, error=str(exc), details=exc.details)
            except httpx.HTTPError as exc:
                logger.warning("GitHub unreachable: %s", exc)
                return _reply(502, ok=False, error="GitHub unreachable.", details=str(exc))

        logger.info(
            "Published %d items to %s/%s:%s",
            len(data["items"]),
            settings.github_owner,
            settings.github_repo,
            path,
        )
        return _reply(200, ok=True)

    return app


__all__ = ["create_publish_app"]
