"""
Notification Delivery Channels

Email, push and SMS senders. None is wired to a delivery provider yet:
each one logs the message it would send and reports success, except
email which first needs the user's address from the auth admin API.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from app.domain.notifications import DeliveryChannel, DeliveryResult
from app.infrastructure.supabase_admin.admin_service import SupabaseAdminService


logger = logging.getLogger(__name__)


class NotificationChannel(ABC):

    channel: DeliveryChannel

    @abstractmethod
    async def send(
        self,
        user_id: str,
        title: str,
        message: str,
        related_data: Optional[Dict[str, Any]] = None,
    ) -> DeliveryResult:
        pass


class EmailChannel(NotificationChannel):
    channel = DeliveryChannel.EMAIL

    def __init__(self, admin: SupabaseAdminService):
        self._admin = admin

    async def send(self, user_id, title, message, related_data=None) -> DeliveryResult:
        try:
            email = await self._admin.get_user_email(user_id)
        except Exception as e:
            logger.error(f"Email lookup failed for user {user_id}: {e}")
            return DeliveryResult(success=False, error=str(e))

        if not email:
            return DeliveryResult(success=False, error="User email not found")

        logger.info(f"[EMAIL] to={email} subject={title!r}")
        logger.debug(f"[EMAIL] body={message!r}")
        return DeliveryResult(success=True, message="Email sent successfully")


class PushChannel(NotificationChannel):
    channel = DeliveryChannel.PUSH

    async def send(self, user_id, title, message, related_data=None) -> DeliveryResult:
        logger.info(f"[PUSH] user={user_id} title={title!r}")
        return DeliveryResult(success=True, message="Push notification sent successfully")


class SmsChannel(NotificationChannel):
    channel = DeliveryChannel.SMS

    async def send(self, user_id, title, message, related_data=None) -> DeliveryResult:
        logger.info(f"[SMS] user={user_id} text={title!r} - {message!r}")
        return DeliveryResult(success=True, message="SMS sent successfully")


def default_channels(admin: SupabaseAdminService) -> Dict[DeliveryChannel, NotificationChannel]:
    return {
        DeliveryChannel.EMAIL: EmailChannel(admin),
        DeliveryChannel.PUSH: PushChannel(),
        DeliveryChannel.SMS: SmsChannel(),
    }
