"""
Integration Domain Models

External channels a user connects to their account. WhatsApp
integrations carry the phone number used to route inbound messages.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class IntegrationType(str, Enum):
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    SLACK = "slack"
    DISCORD = "discord"
    EMAIL = "email"
    ZAPIER = "zapier"
    API = "api"


def normalize_phone_number(raw: Optional[str]) -> Optional[str]:
    """Digits only, so '+1 (555) 010-2000' matches the Graph API's '15550102000'."""
    if raw is None:
        return None
    digits = "".join(ch for ch in raw if ch.isdigit())
    return digits or None


class Integration(BaseModel):
    """Integration as returned to clients; the credential never leaves storage."""
    id: Optional[str] = None
    user_id: str
    type: IntegrationType
    name: str
    enabled: bool = True
    external_address: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreateIntegrationRequest(BaseModel):
    type: IntegrationType
    name: str = Field(..., min_length=1)
    external_address: Optional[str] = None
    credential: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
