"""
Account Data Repository

Bulk removal of everything a user owns, one table at a time. Each table
runs inside its own savepoint so one failure does not abort the rest of
the cleanup transaction.
"""

import logging
from typing import Dict, Type

from sqlalchemy import delete, select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.infrastructure.db.models import (
    ConversationModel,
    ExpenseModel,
    IntegrationModel,
    KnowledgeBaseModel,
    MessageModel,
    NotificationHistoryModel,
    NotificationPreferenceModel,
    ProfileModel,
    UsageCounterModel,
    UserSubscriptionModel,
)
from app.infrastructure.db.repositories.base_repository import as_uuid


logger = logging.getLogger(__name__)


# Tables with a user_id column; messages are reached through conversations.
USER_OWNED_MODELS: Dict[str, Type[SQLModel]] = {
    "conversations": ConversationModel,
    "notification_history": NotificationHistoryModel,
    "notification_preferences": NotificationPreferenceModel,
    "usage_counters": UsageCounterModel,
    "expenses": ExpenseModel,
    "knowledge_base": KnowledgeBaseModel,
    "integrations": IntegrationModel,
    "user_subscriptions": UserSubscriptionModel,
    "profiles": ProfileModel,
}


class AccountDataRepository:

    def __init__(self, session: AsyncSession):
        self._session = session

    async def delete_user_rows(self, table: str, user_id: str) -> int:
        """
        Delete the user's rows from ``table`` and return how many went.

        Raises:
            KeyError: ``table`` is not a user-owned table
            SQLAlchemyError: the delete failed (its savepoint is rolled back)
        """
        uid = as_uuid(user_id)

        if table == "messages":
            owned_conversations = select(ConversationModel.id).where(ConversationModel.user_id == uid)
            stmt = delete(MessageModel).where(MessageModel.conversation_id.in_(owned_conversations))
        else:
            model = USER_OWNED_MODELS[table]
            stmt = delete(model).where(model.user_id == uid)

        async with self._session.begin_nested():
            result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def commit(self) -> None:
        """Make the cleanup durable before the identity is touched."""
        await self._session.commit()

    async def delete_auth_user(self, user_id: str) -> bool:
        """Remove the identity row directly; needs a role with access to auth.users."""
        async with self._session.begin_nested():
            result = await self._session.execute(
                text("DELETE FROM auth.users WHERE id = :id"),
                {"id": as_uuid(user_id)},
            )
        return (result.rowcount or 0) > 0
