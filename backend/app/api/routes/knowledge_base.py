"""
Knowledge Base API Routes

Entries written here are fed to the chat assistant as business context.
"""

import logging

from fastapi import APIRouter

from app.api.dependencies import KnowledgeBaseRepoDep
from app.domain.knowledge_base import KnowledgeBaseRequest, entry_columns
from app.infrastructure.exceptions import NotFoundError, ValidationError


logger = logging.getLogger(__name__)

router = APIRouter()


def _require(request: KnowledgeBaseRequest, *fields: str) -> None:
    missing = [name for name in fields if not getattr(request, name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", {"missing": missing})


@router.post("/create-knowledge-base-entry")
async def create_knowledge_base_entry(request: KnowledgeBaseRequest, repo: KnowledgeBaseRepoDep):
    _require(request, "user_id", "title", "content")

    entry = await repo.create(request.user_id, entry_columns(request))
    logger.info(f"Created knowledge base entry {entry.id} for user {request.user_id}")
    return {"entry": entry.model_dump(mode="json"), "success": True}


@router.post("/update-knowledge-base-entry")
async def update_knowledge_base_entry(request: KnowledgeBaseRequest, repo: KnowledgeBaseRepoDep):
    _require(request, "entry_id", "user_id", "title", "content")

    entry = await repo.update(request.entry_id, request.user_id, entry_columns(request))
    if entry is None:
        raise NotFoundError("Knowledge base entry not found", operation="update", table="knowledge_base")

    logger.info(f"Updated knowledge base entry {entry.id}")
    return {"entry": entry.model_dump(mode="json"), "success": True}
