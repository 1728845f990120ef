"""Async client for the outbound push-notification gateway.

The gateway fronts FCM: it accepts a device token plus title/body/data and
answers 2xx when the message was handed over. Delivery itself is the
gateway's concern.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


class PushClient:
    """Thin wrapper around ``POST {PUSH_SERVICE_URL}/send``."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def send(
        self,
        *,
        token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Send one message. Returns False instead of raising on failure."""
        headers = {"Authorization": f"Bearer {self.api_key}"}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        payload = {
            "token": token,
            "notification": {"title": title, "body": body},
            # FCM data payloads must be string-valued
            "data": {k: str(v) for k, v in (data or {}).items()},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/send", json=payload, headers=headers
                )
        except httpx.HTTPError as exc:
            logger.warning("Push gateway unreachable: %s", exc)
            return False

        if response.status_code >= 400:
            logger.warning(
                "Push gateway rejected message (%d): %s",
                response.status_code,
                response.text[:200],
            )
            return False
        return True


@lru_cache
def get_push_client() -> PushClient:
    settings = get_settings()
    return PushClient(
        settings.PUSH_SERVICE_URL,
        settings.PUSH_SERVICE_KEY,
        timeout=settings.PUSH_TIMEOUT_SECONDS,
    )
