"""
Newsletter Subscription SQLModel
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, String, Text
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import utc_now


class NewsletterSubscriptionModel(SQLModel, table=True):
    """newsletter_subscriptions table model; email is unique."""

    __tablename__ = "newsletter_subscriptions"

    id: UUID = Field(default_factory=uuid4, primary_key=True, nullable=False)
    email: str = Field(..., sa_column=Column(String(320), unique=True, nullable=False))
    source: str = Field(default="website_footer", sa_column=Column(String(50), nullable=False))
    user_agent: Optional[str] = Field(default=None, sa_column=Column(Text))
    ip_address: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
