"""
Base Model for SQLModel ORM

Common id and timestamp columns shared by the assistant's tables.
Timestamps are stored as ``timestamptz`` and always written in UTC.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    """created_at / updated_at pair."""

    created_at: datetime = Field(
        default_factory=utc_now,
        nullable=False,
        sa_type=DateTime(timezone=True),
        description="Record creation timestamp (UTC)"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": utc_now},
        description="Last update timestamp (UTC)"
    )


class UUIDMixin(SQLModel):
    """UUID v4 primary key."""

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
        description="Unique identifier (UUID v4)"
    )


class BaseModel(UUIDMixin, TimestampMixin):
    """
    Base model combining UUID and timestamp mixins.

    Provides: id, created_at, updated_at
    """

    class Config:
        from_attributes = True
        validate_assignment = True
