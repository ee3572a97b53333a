"""
Notification API Routes
"""

from fastapi import APIRouter

from app.api.dependencies import NotificationServiceDep
from app.domain.notifications import SendNotificationRequest


router = APIRouter()


@router.post("/send-notification")
async def send_notification(request: SendNotificationRequest, service: NotificationServiceDep):
    """
    Deliver a notification if the user's preferences allow it now.

    Inside quiet hours the notification is recorded as pending with the
    time it may go out instead of being sent.
    """
    return await service.send(request)
