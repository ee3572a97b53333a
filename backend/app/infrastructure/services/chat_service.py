"""
Chat Service

Runs one assistant turn: loads recent history and business context,
asks the language model and stores both sides of the exchange.
"""

import logging
from typing import Optional

from app.config.settings import Settings
from app.domain.chat import MessageRole, build_completion_messages, build_system_prompt
from app.infrastructure.ai.openai_service import OpenAIService
from app.infrastructure.db.repositories.conversation_repository import ConversationRepository
from app.infrastructure.db.repositories.knowledge_base_repository import KnowledgeBaseRepository
from app.infrastructure.exceptions import NotFoundError, ValidationError


logger = logging.getLogger(__name__)


class ChatService:

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        knowledge_base_repo: KnowledgeBaseRepository,
        openai_service: OpenAIService,
        settings: Settings,
    ):
        self._conversations = conversation_repo
        self._knowledge_base = knowledge_base_repo
        self._openai = openai_service
        self._history_limit = settings.chat_history_limit

    async def reply(
        self,
        message: str,
        user_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> str:
        """
        Produce the assistant's answer to ``message``.

        Without a conversation id the turn is stateless and nothing is
        stored.

        Raises:
            ValidationError: conversation id given without a user id
            NotFoundError: the conversation does not belong to the user
        """
        history = []
        if conversation_id:
            if not user_id:
                raise ValidationError("userId is required with conversationId")
            conversation = await self._conversations.get_for_user(conversation_id, user_id)
            if conversation is None:
                raise NotFoundError("Conversation not found", operation="read", table="conversations")
            history = await self._conversations.get_recent_messages(conversation_id, self._history_limit)

        context = await self._knowledge_base.get_entries(user_id) if user_id else []
        system_prompt = build_system_prompt(entry.as_context() for entry in context)
        messages = build_completion_messages(history, message, system_prompt, self._history_limit)

        if conversation_id:
            await self._conversations.add_message(conversation_id, MessageRole.USER, message)
            # Kept even when the completion below fails.
            await self._conversations.commit()

        answer = await self._openai.complete(messages)

        if conversation_id:
            await self._conversations.add_message(conversation_id, MessageRole.ASSISTANT, answer)

        logger.info(f"Chat turn completed (conversation={conversation_id}, history={len(history)})")
        return answer
