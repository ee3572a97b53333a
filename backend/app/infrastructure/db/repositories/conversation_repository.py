"""
Conversation Repository

Conversations and their messages. Messages are only reachable through a
conversation owned by the requesting user.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.chat import ChatMessage, MessageRole
from app.infrastructure.db.models.conversation import ConversationModel, MessageModel
from app.infrastructure.db.repositories.base_repository import BaseRepository, as_uuid


class ConversationRepository(BaseRepository[ConversationModel]):
    """
    Repository for chat history.

    Manages both ConversationModel and MessageModel rows.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(ConversationModel, session)

    async def get_for_user(self, conversation_id: str, user_id: str) -> Optional[ConversationModel]:
        return await self.get_owned(conversation_id, user_id)

    async def get_recent_messages(
        self,
        conversation_id: str,
        limit: int = 20,
    ) -> List[ChatMessage]:
        """
        Last ``limit`` messages of a conversation, oldest first.

        Args:
            conversation_id: Conversation already checked for ownership
            limit: Maximum messages to return
        """
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == as_uuid(conversation_id, "conversation_id"))
            .order_by(MessageModel.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        newest_first = list(result.scalars().all())
        return [self._message_to_domain(m) for m in reversed(newest_first)]

    async def add_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
    ) -> ChatMessage:
        message = MessageModel(
            conversation_id=as_uuid(conversation_id, "conversation_id"),
            role=role.value,
            content=content,
        )
        self.session.add(message)

        conversation = await self.session.get(ConversationModel, message.conversation_id)
        if conversation is not None:
            conversation.updated_at = datetime.now(timezone.utc)
            if not conversation.title and role == MessageRole.USER:
                conversation.title = content[:50] + ("..." if len(content) > 50 else "")

        await self.session.flush()
        return self._message_to_domain(message)

    async def commit(self) -> None:
        await self.session.commit()

    def _message_to_domain(self, model: MessageModel) -> ChatMessage:
        return ChatMessage(
            id=str(model.id),
            conversation_id=str(model.conversation_id),
            role=MessageRole(model.role),
            content=model.content,
            created_at=model.created_at,
        )
