"""
Conversation and Message SQLModels

Chat history for the assistant. Messages cascade with their conversation.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import BaseModel, utc_now


class ConversationModel(BaseModel, table=True):
    """conversations table model."""

    __tablename__ = "conversations"

    user_id: UUID = Field(..., index=True, nullable=False)
    title: Optional[str] = Field(
        default=None,
        max_length=255,
        sa_column=Column(String(255)),
        description="Auto-generated from first message"
    )


class MessageModel(SQLModel, table=True):
    """
    messages table model.

    Append-only, so there is no updated_at column.
    """

    __tablename__ = "messages"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
    )
    conversation_id: UUID = Field(
        ...,
        sa_column=Column(
            "conversation_id",
            ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        ),
    )
    role: str = Field(..., sa_column=Column(String(20), nullable=False))
    content: str = Field(..., sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    class Config:
        from_attributes = True
