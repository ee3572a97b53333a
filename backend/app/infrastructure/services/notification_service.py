"""
Notification Service

Preference-gated dispatch: checks channel and type toggles, defers
messages that land in the user's quiet hours and records every send in
the notification history.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from app.domain.notifications import (
    DeliveryChannel,
    DeliveryStatus,
    NotificationRecord,
    SendNotificationRequest,
    is_notification_enabled,
    next_allowed_time,
    quiet_hours_active,
)
from app.infrastructure.db.repositories.notification_repository import NotificationRepository
from app.infrastructure.notifications.channels import NotificationChannel


logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(
        self,
        repo: NotificationRepository,
        channels: Mapping[DeliveryChannel, NotificationChannel],
    ):
        self._repo = repo
        self._channels = channels

    def _record(self, request: SendNotificationRequest, **fields: Any) -> NotificationRecord:
        return NotificationRecord(
            user_id=request.user_id,
            notification_type=request.notification_type,
            title=request.title,
            message=request.message,
            delivery_channel=request.delivery_channel,
            related_expense_id=request.related_expense_id,
            related_data=request.related_data,
            **fields,
        )

    async def send(self, request: SendNotificationRequest, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Process one notification request and return the response body."""
        now = now or datetime.now(timezone.utc)
        logger.info(
            f"Processing notification for user {request.user_id}: "
            f"{request.notification_type} via {request.delivery_channel.value}"
        )

        preferences = await self._repo.get_preferences(request.user_id)
        if preferences is None:
            logger.warning(f"No notification preferences for user {request.user_id}")
            return {"success": False, "error": "User preferences not found"}

        if not is_notification_enabled(preferences, request.notification_type, request.delivery_channel):
            logger.info("Notification disabled by user preferences")
            return {"success": True, "message": "Notification disabled by user preferences"}

        if quiet_hours_active(preferences, now):
            scheduled_for = next_allowed_time(preferences, now)
            await self._repo.record(self._record(
                request,
                delivery_status=DeliveryStatus.PENDING,
                scheduled_for=scheduled_for,
            ))
            logger.info(f"Quiet hours active; scheduled for {scheduled_for.isoformat()}")
            return {
                "success": True,
                "message": "Notification scheduled for after quiet hours",
                "scheduled_for": scheduled_for.isoformat(),
            }

        channel = self._channels[request.delivery_channel]
        result = await channel.send(request.user_id, request.title, request.message, request.related_data)

        await self._repo.record(self._record(
            request,
            delivery_status=DeliveryStatus.SENT if result.success else DeliveryStatus.FAILED,
            delivery_error=None if result.success else result.error,
            sent_at=now,
        ))
        return result.model_dump(exclude_none=True)
