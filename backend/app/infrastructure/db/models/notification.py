"""
Notification SQLModels

Per-user delivery preferences and the append-only delivery history.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import Column, DateTime, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class NotificationPreferenceModel(BaseModel, table=True):
    """notification_preferences table model."""

    __tablename__ = "notification_preferences"

    user_id: UUID = Field(sa_column=Column(PGUUID(as_uuid=True), unique=True, index=True, nullable=False))

    # Channels
    email_notifications: bool = Field(default=True)
    push_notifications: bool = Field(default=True)
    sms_notifications: bool = Field(default=False)

    # Notification types
    expense_alerts: bool = Field(default=True)
    budget_warnings: bool = Field(default=True)
    large_expense_alerts: bool = Field(default=True)
    duplicate_expense_warnings: bool = Field(default=True)
    ai_insights: bool = Field(default=True)
    smart_categorization_suggestions: bool = Field(default=True)
    receipt_processing_status: bool = Field(default=True)
    login_alerts: bool = Field(default=True)
    account_changes: bool = Field(default=True)
    data_export_completion: bool = Field(default=True)
    feature_updates: bool = Field(default=False)
    product_announcements: bool = Field(default=False)
    tips_and_tutorials: bool = Field(default=False)
    daily_summaries: bool = Field(default=False)
    weekly_insights: bool = Field(default=True)
    monthly_reports: bool = Field(default=True)

    # Quiet hours, local to ``timezone``
    quiet_hours_enabled: bool = Field(default=False)
    quiet_hours_start: Optional[str] = Field(default="22:00:00", max_length=8)
    quiet_hours_end: Optional[str] = Field(default="08:00:00", max_length=8)
    timezone: str = Field(default="UTC", max_length=64)


class NotificationHistoryModel(BaseModel, table=True):
    """notification_history table model. Rows are never updated."""

    __tablename__ = "notification_history"

    user_id: UUID = Field(..., index=True, nullable=False)
    notification_type: str = Field(..., sa_column=Column(String(50), nullable=False))
    title: str = Field(..., sa_column=Column(String(255), nullable=False))
    message: str = Field(..., sa_column=Column(Text, nullable=False))
    delivery_channel: str = Field(..., sa_column=Column(String(20), nullable=False))
    delivery_status: str = Field(default="pending", sa_column=Column(String(20), nullable=False))
    delivery_error: Optional[str] = Field(default=None, sa_column=Column(Text))
    related_expense_id: Optional[UUID] = Field(default=None)
    related_data: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    scheduled_for: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    sent_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
