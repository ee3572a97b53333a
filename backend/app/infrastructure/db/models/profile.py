"""
Profile SQLModel

Minimal account profile. Only read by the account deletion cleanup.
"""

from typing import Optional
from uuid import UUID

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class ProfileModel(BaseModel, table=True):
    """profiles table model."""

    __tablename__ = "profiles"

    user_id: UUID = Field(..., unique=True, index=True, nullable=False)
    business_name: Optional[str] = Field(default=None, max_length=255)
    industry: Optional[str] = Field(default=None, max_length=100)
