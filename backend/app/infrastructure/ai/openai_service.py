"""
OpenAI Service

Chat completions for the assistant and the document categorizer, through
the official async SDK. No retries: provider errors surface immediately
as AIServiceError.
"""

import logging
from typing import Dict, List, Optional

from openai import AsyncOpenAI, APIError, APIConnectionError, APITimeoutError

from app.config.settings import Settings
from app.domain.chat import (
    CATEGORIZER_SYSTEM_PROMPT,
    DocumentCategory,
    build_categorizer_prompt,
    parse_category,
)
from app.infrastructure.exceptions import AIServiceError, ConfigurationError


logger = logging.getLogger(__name__)


class OpenAIService:
    """
    Thin wrapper over ``AsyncOpenAI``.

    The SDK client is built lazily so a process without OPENAI_API_KEY
    still starts; the first call then raises ConfigurationError.
    """

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self._settings = settings
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._settings.openai_api_key:
                raise ConfigurationError("OpenAI API key not configured", missing_keys=["OPENAI_API_KEY"])
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                timeout=self._settings.http_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate a chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (defaults to the chat setting)
            max_tokens: Maximum tokens to generate

        Returns:
            The assistant's reply text.
        """
        client = self.client
        try:
            response = await client.chat.completions.create(
                model=self._settings.openai_model,
                messages=messages,
                temperature=(
                    temperature if temperature is not None
                    else self._settings.openai_chat_temperature
                ),
                max_tokens=max_tokens or self._settings.openai_chat_max_tokens,
            )
        except (APIConnectionError, APITimeoutError) as e:
            logger.error(f"OpenAI connection error: {e}")
            raise AIServiceError(f"OpenAI API error: {e}", provider="openai", original_error=e)
        except APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise AIServiceError(
                f"OpenAI API error: {e}",
                provider="openai",
                status=getattr(e, "status_code", None),
                original_error=e,
            )

        if not response.choices:
            raise AIServiceError("OpenAI returned no choices", provider="openai")
        return response.choices[0].message.content or ""

    async def categorize_document(self, file_name: str, file_type: str, file_size: int) -> DocumentCategory:
        """Ask the model for one label; anything off-list becomes OTHER."""
        raw = await self.complete(
            [
                {"role": "system", "content": CATEGORIZER_SYSTEM_PROMPT},
                {"role": "user", "content": build_categorizer_prompt(file_name, file_type, file_size)},
            ],
            temperature=self._settings.openai_categorizer_temperature,
            max_tokens=20,
        )
        category = parse_category(raw)
        logger.debug(f"Categorized {file_name!r} as {category.value} (raw={raw!r})")
        return category
