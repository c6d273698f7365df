# rentlead/integrations/webhook.py
from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

import httpx

from ..domain.errors import NotifierError


class WebhookNotifier:
    """
    Hands notifications to the push/SMS gateway over a signed JSON webhook.
    """

    def __init__(
        self,
        url: str,
        secret: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.secret = secret
        self.timeout_s = timeout_s
        self.transport = transport

    def _sign(self, body: bytes) -> str | None:
        if not self.secret:
            return None
        return hmac.new(self.secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    async def notify(
        self,
        recipient_id: int,
        type: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        payload = json.dumps(
            {"type": type, "recipient_id": recipient_id, "title": title, "body": body, "data": data or {}},
            default=str,
        ).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        sig = self._sign(payload)
        if sig:
            headers["X-Rentlead-Signature"] = sig

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.post(self.url, content=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NotifierError(f"webhook transport error: {e}") from e

        if not (200 <= r.status_code < 300):
            raise NotifierError(f"HTTP {r.status_code}: {r.text[:500]}")


def sink_from_settings() -> WebhookNotifier | None:
    from ..config import settings

    if not settings.NOTIFY_WEBHOOK_URL:
        return None
    return WebhookNotifier(
        settings.NOTIFY_WEBHOOK_URL,
        secret=settings.NOTIFY_WEBHOOK_SECRET,
        timeout_s=settings.NOTIFY_TIMEOUT_S,
    )
