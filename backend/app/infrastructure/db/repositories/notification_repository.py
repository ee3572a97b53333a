"""
Notification Repository

Preference lookups and append-only history writes.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.notifications import NotificationPreferences, NotificationRecord
from app.infrastructure.db.models.notification import (
    NotificationHistoryModel,
    NotificationPreferenceModel,
)
from app.infrastructure.db.repositories.base_repository import as_uuid


class NotificationRepository:

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        stmt = select(NotificationPreferenceModel).where(
            NotificationPreferenceModel.user_id == as_uuid(user_id)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        data = model.model_dump(exclude={"id", "created_at", "updated_at"})
        data["user_id"] = str(model.user_id)
        return NotificationPreferences.model_validate(data)

    async def record(self, record: NotificationRecord) -> str:
        """Append a history row and return its id."""
        model = NotificationHistoryModel(
            user_id=as_uuid(record.user_id),
            notification_type=record.notification_type,
            title=record.title,
            message=record.message,
            delivery_channel=record.delivery_channel.value,
            delivery_status=record.delivery_status.value,
            delivery_error=record.delivery_error,
            related_expense_id=(
                as_uuid(record.related_expense_id, "related_expense_id")
                if record.related_expense_id else None
            ),
            related_data=record.related_data,
            scheduled_for=record.scheduled_for,
            sent_at=record.sent_at,
        )
        self._session.add(model)
        await self._session.flush()
        return str(model.id)
