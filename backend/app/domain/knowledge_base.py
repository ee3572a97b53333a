"""
Knowledge Base Domain Models

Client entries are stored as a small business profile; the mapping from
the entry form onto profile columns lives here.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field

from app.domain.chat import BusinessContext


DEFAULT_INDUSTRY = "general"
TARGET_AUDIENCE_MAX_LENGTH = 255


class KnowledgeBaseEntry(BaseModel):
    id: Optional[str] = None
    user_id: str
    business_name: str
    industry: str = DEFAULT_INDUSTRY
    target_audience: Optional[str] = None
    products_services: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def as_context(self) -> BusinessContext:
        return BusinessContext(
            business_name=self.business_name,
            industry=self.industry,
            target_audience=self.target_audience,
            products_services=self.products_services,
        )


class KnowledgeBaseRequest(BaseModel):
    """Body of the create/update knowledge-base endpoints."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    entry_id: Optional[str] = Field(default=None, alias="entryId")
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None


def entry_columns(request: KnowledgeBaseRequest) -> dict:
    """Project the entry form onto knowledge_base columns."""
    tags = request.tags or []
    return {
        "business_name": request.title,
        "industry": request.category or DEFAULT_INDUSTRY,
        "target_audience": (request.content or "")[:TARGET_AUDIENCE_MAX_LENGTH],
        "products_services": ", ".join(tags) if tags else None,
        "tags": tags,
    }
