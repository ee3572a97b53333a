"""
Integration SQLModel

External channels linked to a user. ``credential_encrypted`` holds a
Fernet token and is never returned by the API.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import Column, JSON, String, Text
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class IntegrationModel(BaseModel, table=True):
    """integrations table model."""

    __tablename__ = "integrations"

    user_id: UUID = Field(..., index=True, nullable=False)
    type: str = Field(..., sa_column=Column(String(20), nullable=False))
    name: str = Field(..., sa_column=Column(String(100), nullable=False))
    enabled: bool = Field(default=True)

    # Normalized address on the external network (digits only for WhatsApp)
    external_address: Optional[str] = Field(default=None, max_length=255, index=True)

    credential_encrypted: Optional[str] = Field(default=None, sa_column=Column(Text))
    config: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
