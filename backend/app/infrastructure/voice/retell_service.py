"""
Retell Voice Service

Brokers the web-call handshake: the browser gets a call id and access
token, then talks to Retell directly. Audio never passes through here.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.config.settings import Settings
from app.infrastructure.exceptions import ConfigurationError, VoiceProviderError


logger = logging.getLogger(__name__)


class RetellService:

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._api_key = settings.retell_api_key
        self._base_url = settings.retell_base_url.rstrip("/")
        self._timeout = settings.http_timeout_seconds
        self._transport = transport

    async def create_web_call(
        self,
        agent_id: str,
        customer_name: Optional[str] = None,
        customer_email: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Register a web call and return Retell's JSON untouched.

        Raises:
            ConfigurationError: RETELL_API_KEY is not set
            VoiceProviderError: Retell answered with a non-2xx status
        """
        if not self._api_key:
            raise ConfigurationError("Missing RETELL_API_KEY", missing_keys=["RETELL_API_KEY"])

        body = {
            "agent_id": agent_id,
            "type": "web",
            "customer_name": customer_name,
            "customer_email": customer_email,
            "metadata": metadata or {},
        }

        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/v2/create-web-call", json=body)
            except httpx.HTTPError as e:
                logger.error(f"Retell request failed: {e}")
                raise VoiceProviderError(f"Retell error: {e}", provider="retell", original_error=e)

        if response.is_error:
            logger.error(f"Retell returned {response.status_code}")
            raise VoiceProviderError(
                f"Retell error: {response.text}",
                provider="retell",
                status=response.status_code,
            )

        data = response.json()
        logger.info(f"Created Retell web call {data.get('call_id')} for agent {agent_id}")
        return data
