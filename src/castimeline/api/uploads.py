"""
Image uploads: base64 data URLs written under ``img/uploads``.

Only ``data:<image mime>;base64,<payload>`` is accepted. The stored name is
``<slug>-<epoch ms>-<hex8><ext>`` where the slug comes from the original file
name and the extension from the MIME type (falling back to the original
extension, then ``.png``).
"""

from __future__ import annotations

import base64
import binascii
import re
import time
import uuid
from pathlib import Path, PurePosixPath
from typing import Final

from castimeline.core.errors import ValidationFailure

UPLOAD_SUBDIR: Final = PurePosixPath("img") / "uploads"

_DATA_URL = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)
_MIME_EXTENSIONS: Final = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}


def extension_for_mime(mime: str | None) -> str:
    return _MIME_EXTENSIONS.get((mime or "").lower(), "")


def sanitize_base_name(name: str | None) -> str:
    """Lower-case slug of a file name without its extension (max 60 chars)."""
    raw = str(name or "").strip()
    without_ext = re.sub(r"\.[a-z0-9]+$", "", raw, flags=re.IGNORECASE)
    cleaned = re.sub(r"[^a-z0-9]+", "-", without_ext.lower()).strip("-")[:60]
    return cleaned or "upload"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Return ``(mime, bytes)`` or raise :class:`ValidationFailure`."""
    match = _DATA_URL.match(data_url or "")
    if not match:
        raise ValidationFailure("Expected a base64 data URL.")
    mime, encoded = match.group(1), match.group(2)
    if not mime.lower().startswith("image/"):
        raise ValidationFailure("Only image uploads are supported.")
    try:
        return mime, base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValidationFailure("Invalid base64.") from exc


def save_upload(root: Path, data_url: str, filename: str | None, *, now_ms: int | None = None) -> str:
    """Write the image below ``root`` and return its site-relative URL."""
    mime, data = decode_data_url(data_url)
    original = filename or "upload"
    ext = extension_for_mime(mime) or PurePosixPath(original).suffix or ".png"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    name = f"{sanitize_base_name(original)}-{stamp}-{uuid.uuid4().hex[:8]}{ext}"
    target_dir = Path(root) / UPLOAD_SUBDIR
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / name).write_bytes(data)
    return f"/{UPLOAD_SUBDIR}/{name}"


__all__ = [
    "UPLOAD_SUBDIR",
    "decode_data_url",
    "extension_for_mime",
    "sanitize_base_name",
    "save_upload",
]
