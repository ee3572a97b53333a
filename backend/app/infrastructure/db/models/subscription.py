"""
Subscription Database Model

SQLModel table for the per-user billing state written by the Stripe webhook.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class UserSubscriptionModel(BaseModel, table=True):
    """
    Maps to the 'user_subscriptions' table.

    One row per user; billing events never hard-delete it.
    """

    __tablename__ = "user_subscriptions"

    user_id: UUID = Field(sa_column=Column(PGUUID(as_uuid=True), unique=True, index=True, nullable=False))

    # Stripe IDs
    stripe_customer_id: Optional[str] = Field(default=None, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None, unique=True, index=True)

    plan_name: str = Field(default="Free", sa_column=Column(String(100), nullable=False))
    status: str = Field(default="active", sa_column=Column(String(20), nullable=False))

    # Billing period dates
    current_period_start: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    current_period_end: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    cancel_at_period_end: bool = Field(default=False)
