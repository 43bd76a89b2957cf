"""
FastAPI application factory for the local authoring server.

This module builds the server that backs "server mode" of the timeline. It is
responsible for:
1.  **Middleware Setup**: CORS and the 25 MB request body limit.
2.  **Exception Handling**: every error leaves as ``{ok: false, error}`` JSON.
3.  **Routing**: session routes, timeline/authoring routes, then the static
    site mounted last so ``/api`` always wins.
4.  **Lifecycle**: initialising the session registry at startup.

Design Pattern
--------------
An application factory (`create_app`) so tests can spin up an isolated app
over a temporary site root with injected settings.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Final

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from castimeline import __version__
from castimeline.api.data_store import TimelineFileStore
from castimeline.api.routers import auth, events
from castimeline.api.sessions import SessionStore
from castimeline.core.settings import Settings, get_logger, load_settings

MAX_BODY_BYTES: Final = 25 * 1024 * 1024

logger = get_logger("castimeline.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise the session registry before the first request."""
    SessionStore.get_instance()
    logger.info("Authoring server serving %s", app.state.file_store.root)
    yield
    logger.info("Authoring server shutting down")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def create_app(
    settings: Settings | None = None,
    *,
    root: Path | None = None,
    max_body_bytes: int = MAX_BODY_BYTES,
) -> FastAPI:
    """
    Construct the authoring server.

    Parameters
    ----------
    settings : Settings, optional
        Configuration; defaults to the cached :func:`load_settings` instance.
    root : Path, optional
        Site root holding ``assets/``, ``data/`` and ``img/``; defaults to
        ``settings.site_root``.
    max_body_bytes : int
        Requests declaring a larger body are answered with 413.

    Returns
    -------
    FastAPI
        The configured ASGI application ready to be served by Uvicorn.
    """
    settings = settings or load_settings()
    site_root = Path(root or settings.site_root).resolve()

    app = FastAPI(
        title="CAS Timeline authoring server",
        version=__version__,
        docs_url="/api/docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.file_store = TimelineFileStore(site_root)

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=settings.cors_origin != "*",
        allow_methods=["GET", "HEAD", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > max_body_bytes:
            return _error(413, "Request too large.")
        return await call_next(request)

    # -----------------------------------------------------------------------
    # Global Exception Handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Unparsable or ill-typed request bodies."""
        return _error(400, "Invalid JSON.")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Map ValueErrors (including ValidationFailure) to HTTP 400."""
        return _error(400, str(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(500, "Server error.")

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    app.include_router(auth.router)
    app.include_router(events.router)
    app.mount("/", StaticFiles(directory=site_root, html=True, check_dir=False), name="site")

    return app


__all__ = ["MAX_BODY_BYTES", "create_app"]
