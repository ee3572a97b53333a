"""
KnowledgeBase SQLModel

Business profile entries that feed the chat assistant's context.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import Column, JSON, String, Text
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class KnowledgeBaseModel(BaseModel, table=True):
    """knowledge_base table model."""

    __tablename__ = "knowledge_base"

    user_id: UUID = Field(..., index=True, nullable=False)
    business_name: str = Field(..., sa_column=Column(String(255), nullable=False))
    industry: str = Field(default="general", sa_column=Column(String(100), nullable=False))
    target_audience: Optional[str] = Field(default=None, sa_column=Column(String(255)))
    products_services: Optional[str] = Field(default=None, sa_column=Column(Text))
    tags: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
