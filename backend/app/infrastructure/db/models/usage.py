"""
Usage Counter SQLModel

One row per user. ``period_index`` is ``year * 12 + month - 1`` of the
month the counters belong to; the increment statement zeroes them when
it moves to a later month.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import utc_now


class UsageCounterModel(SQLModel, table=True):
    """usage_counters table model."""

    __tablename__ = "usage_counters"

    user_id: UUID = Field(sa_column=Column(PGUUID(as_uuid=True), primary_key=True, nullable=False))
    period_index: int = Field(..., nullable=False)
    receipt_uploads: int = Field(default=0, nullable=False)
    ai_content_generations: int = Field(default=0, nullable=False)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
