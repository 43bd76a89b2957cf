"""Client for the publish worker (``POST {endpoint}`` with ``{password, data}``)."""

from __future__ import annotations

from typing import Any

import httpx

from castimeline.core.errors import PublishFailure
from castimeline.core.settings import get_logger

UNREACHABLE_MESSAGE = "Publish failed. Check the publish server."

logger = get_logger("castimeline.backends.publish")


class PublishClient:
    """Submits a full dataset for durable storage."""

    def __init__(self, endpoint: str, *, client: httpx.Client | None = None, timeout: float = 30.0):
        self.endpoint = endpoint.strip()
        self._client = client or httpx.Client(timeout=timeout)

    def publish(self, payload: dict[str, Any], password: str) -> dict[str, Any]:
        """Return the worker's receipt or raise :class:`PublishFailure`."""
        try:
            response = self._client.post(self.endpoint, json={"password": password, "data": payload})
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Publish endpoint unreachable: %s", exc)
            raise PublishFailure(UNREACHABLE_MESSAGE, unreachable=True) from exc
        if not response.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            raise PublishFailure(message or "Publish failed.")
        logger.info("Published %d items", len(payload.get("items") or []))
        return body if isinstance(body, dict) else {"ok": True}


__all__ = ["PublishClient", "UNREACHABLE_MESSAGE"]
