"""
Knowledge Base Repository
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.knowledge_base import KnowledgeBaseEntry
from app.infrastructure.db.models.knowledge_base import KnowledgeBaseModel
from app.infrastructure.db.repositories.base_repository import BaseRepository, as_uuid


class KnowledgeBaseRepository(BaseRepository[KnowledgeBaseModel]):

    def __init__(self, session: AsyncSession):
        super().__init__(KnowledgeBaseModel, session)

    async def create(self, user_id: str, columns: dict) -> KnowledgeBaseEntry:
        model = KnowledgeBaseModel(user_id=as_uuid(user_id), **columns)
        return self._to_domain(await self.add(model))

    async def update(self, entry_id: str, user_id: str, columns: dict) -> Optional[KnowledgeBaseEntry]:
        model = await self.update_owned(entry_id, user_id, columns)
        return self._to_domain(model) if model else None

    async def get_entries(self, user_id: str, limit: int = 5) -> List[KnowledgeBaseEntry]:
        """Most recent entries first."""
        return [self._to_domain(m) for m in await self.list_for_user(user_id, limit)]

    def _to_domain(self, model: KnowledgeBaseModel) -> KnowledgeBaseEntry:
        return KnowledgeBaseEntry(
            id=str(model.id),
            user_id=str(model.user_id),
            business_name=model.business_name,
            industry=model.industry,
            target_audience=model.target_audience,
            products_services=model.products_services,
            tags=model.tags or [],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
