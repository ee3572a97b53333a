"""
Voice Call Domain Models
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class WebCallRequest(BaseModel):
    """Body of POST /create-web-call."""
    agent_id: str = Field(..., min_length=1)
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
