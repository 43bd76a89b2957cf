"""
Timeline data and authoring routes.

Endpoints
---------
- `GET  /api/timeline-data` : base dataset minus tombstones plus server-added events.
- `POST /api/events`        : validate a draft and append it (session required).
- `POST /api/delete`        : remove a server-added event or tombstone a base one.
- `POST /api/upload-image`  : store a base64 image, answer its URL.

Validation problems raise :class:`ValidationFailure` (a ``ValueError``), which
the application maps to ``400 {ok: false, error}``. Handlers touching disk are
plain ``def`` so they run in the threadpool.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from castimeline.api.data_store import TimelineFileStore
from castimeline.api.routers.deps import get_file_store, require_session
from castimeline.api.schemas import DeleteRequest, UploadRequest
from castimeline.api.uploads import save_upload
from castimeline.core.contracts.draft import EventDraft
from castimeline.core.errors import ValidationFailure
from castimeline.core.settings import get_logger

router = APIRouter(prefix="/api", tags=["Timeline"])

logger = get_logger("castimeline.api.events")


@router.get("/timeline-data")
def timeline_data(store: TimelineFileStore = Depends(get_file_store)) -> dict[str, Any]:
    return store.timeline_data()


@router.post("/events")
def add_event(
    draft: EventDraft,
    _session: str = Depends(require_session),
    store: TimelineFileStore = Depends(get_file_store),
) -> dict[str, Any]:
    item = draft.require_complete().to_item()
    store.add_item(item)
    logger.info("Added event %s", item.id)
    return {"ok": True, "item": item.to_export()}


@router.post("/delete")
def delete_event(
    body: DeleteRequest,
    _session: str = Depends(require_session),
    store: TimelineFileStore = Depends(get_file_store),
) -> dict[str, Any]:
    if not body.id:
        raise ValidationFailure("Missing id.")
    kind = store.delete(body.id)
    logger.info("Deleted event %s (%s)", body.id, kind)
    return {"ok": True}


@router.post("/upload-image")
def upload_image(
    body: UploadRequest,
    _session: str = Depends(require_session),
    store: TimelineFileStore = Depends(get_file_store),
) -> dict[str, Any]:
    url = save_upload(store.root, body.data_url, body.filename)
    logger.info("Stored upload %s", url)
    return {"ok": True, "url": url}


__all__ = ["router"]
