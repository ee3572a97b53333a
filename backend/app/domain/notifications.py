"""
Notification Domain Models

User notification preferences, the notification-type to preference-flag
mapping and the quiet-hours window arithmetic. Quiet hours are local
time-of-day strings; a window whose start is later than its end wraps
past midnight.
"""

from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field


DEFAULT_QUIET_HOURS_START = "22:00:00"
DEFAULT_QUIET_HOURS_END = "08:00:00"


class DeliveryChannel(str, Enum):
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


# notification_type -> preference column
NOTIFICATION_TYPE_FLAGS = {
    "expense_alert": "expense_alerts",
    "budget_warning": "budget_warnings",
    "large_expense": "large_expense_alerts",
    "duplicate_expense": "duplicate_expense_warnings",
    "ai_insight": "ai_insights",
    "smart_categorization": "smart_categorization_suggestions",
    "receipt_processing": "receipt_processing_status",
    "login_alert": "login_alerts",
    "account_change": "account_changes",
    "data_export": "data_export_completion",
    "feature_update": "feature_updates",
    "product_announcement": "product_announcements",
    "tip_tutorial": "tips_and_tutorials",
    "daily_summary": "daily_summaries",
    "weekly_insight": "weekly_insights",
    "monthly_report": "monthly_reports",
}

CHANNEL_FLAGS = {
    DeliveryChannel.EMAIL: "email_notifications",
    DeliveryChannel.PUSH: "push_notifications",
    DeliveryChannel.SMS: "sms_notifications",
}


class NotificationPreferences(BaseModel):
    """Per-user delivery preferences."""
    user_id: str

    # Channels
    email_notifications: bool = True
    push_notifications: bool = True
    sms_notifications: bool = False

    # Notification types
    expense_alerts: bool = True
    budget_warnings: bool = True
    large_expense_alerts: bool = True
    duplicate_expense_warnings: bool = True
    ai_insights: bool = True
    smart_categorization_suggestions: bool = True
    receipt_processing_status: bool = True
    login_alerts: bool = True
    account_changes: bool = True
    data_export_completion: bool = True
    feature_updates: bool = False
    product_announcements: bool = False
    tips_and_tutorials: bool = False
    daily_summaries: bool = False
    weekly_insights: bool = True
    monthly_reports: bool = True

    # Quiet hours
    quiet_hours_enabled: bool = False
    quiet_hours_start: Optional[str] = DEFAULT_QUIET_HOURS_START
    quiet_hours_end: Optional[str] = DEFAULT_QUIET_HOURS_END
    timezone: str = "UTC"

    class Config:
        from_attributes = True


def is_notification_enabled(
    preferences: NotificationPreferences,
    notification_type: str,
    channel: DeliveryChannel,
) -> bool:
    """Both the channel toggle and the type toggle must be on; unknown types are off."""
    if not getattr(preferences, CHANNEL_FLAGS[channel]):
        return False
    flag = NOTIFICATION_TYPE_FLAGS.get(notification_type)
    if flag is None:
        return False
    return getattr(preferences, flag) is True


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS``."""
    return time.fromisoformat(value.strip())


def is_in_quiet_hours(start: str, end: str, current: time) -> bool:
    """Inclusive window test; ``start > end`` wraps past midnight."""
    quiet_start = parse_time_of_day(start)
    quiet_end = parse_time_of_day(end)
    if quiet_start > quiet_end:
        return current >= quiet_start or current <= quiet_end
    return quiet_start <= current <= quiet_end


def user_timezone(preferences: NotificationPreferences) -> ZoneInfo:
    try:
        return ZoneInfo(preferences.timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def local_now(preferences: NotificationPreferences, now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time in the user's timezone."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(user_timezone(preferences))


def quiet_hours_active(
    preferences: NotificationPreferences,
    now: Optional[datetime] = None,
) -> bool:
    if not preferences.quiet_hours_enabled:
        return False
    current = local_now(preferences, now).time().replace(microsecond=0)
    return is_in_quiet_hours(
        preferences.quiet_hours_start or DEFAULT_QUIET_HOURS_START,
        preferences.quiet_hours_end or DEFAULT_QUIET_HOURS_END,
        current,
    )


def next_allowed_time(
    preferences: NotificationPreferences,
    now: Optional[datetime] = None,
) -> datetime:
    """Next occurrence of the quiet-hours end, returned in UTC."""
    local = local_now(preferences, now).replace(microsecond=0)
    quiet_end = parse_time_of_day(preferences.quiet_hours_end or DEFAULT_QUIET_HOURS_END)
    candidate = local.replace(
        hour=quiet_end.hour,
        minute=quiet_end.minute,
        second=quiet_end.second,
        microsecond=0,
    )
    if candidate < local:
        candidate = candidate + timedelta(days=1)
    return candidate.astimezone(timezone.utc)


# =============================================================================
# DTOs
# =============================================================================

class SendNotificationRequest(BaseModel):
    """Body of POST /send-notification."""
    user_id: str
    notification_type: str
    title: str
    message: str
    delivery_channel: DeliveryChannel
    related_expense_id: Optional[str] = None
    related_data: Optional[dict[str, Any]] = None


class DeliveryResult(BaseModel):
    """Outcome of one channel send."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


class NotificationRecord(BaseModel):
    """Append-only history row."""
    user_id: str
    notification_type: str
    title: str
    message: str
    delivery_channel: DeliveryChannel
    delivery_status: DeliveryStatus
    delivery_error: Optional[str] = None
    related_expense_id: Optional[str] = None
    related_data: Optional[dict[str, Any]] = None
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = Field(default=None)
