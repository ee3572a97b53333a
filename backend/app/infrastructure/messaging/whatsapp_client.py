"""
WhatsApp Cloud API Client

Outbound text replies through the Graph API send-message endpoint.
Sends are fire-and-forget from the webhook's point of view: failures are
logged and reported as False, never retried.
"""

import logging
from typing import Optional

import httpx

from app.config.settings import Settings


logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 4096


class WhatsAppClient:

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._access_token = settings.whatsapp_access_token
        self._phone_number_id = settings.whatsapp_phone_number_id
        self._base_url = settings.whatsapp_graph_api_url.rstrip("/")
        self._timeout = settings.http_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._access_token and self._phone_number_id)

    async def send_text(self, to: str, text: str) -> bool:
        """Send a text message; returns whether the Graph API accepted it."""
        if not self.configured:
            logger.warning("[WHATSAPP] Access token or phone number id missing; reply not sent")
            return False

        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._access_token}"},
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(
                    f"/{self._phone_number_id}/messages",
                    json={
                        "messaging_product": "whatsapp",
                        "to": to,
                        "text": {"body": text[:MAX_TEXT_LENGTH]},
                    },
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error("[WHATSAPP] Send to %s rejected (%s): %s", to, e.response.status_code, e.response.text)
                return False
            except httpx.HTTPError:
                logger.exception("[WHATSAPP] Failed to send text to %s", to)
                return False

        return True
