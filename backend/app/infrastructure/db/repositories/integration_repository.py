"""
Integration Repository
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.integration import Integration, IntegrationType
from app.infrastructure.db.models.integration import IntegrationModel
from app.infrastructure.db.repositories.base_repository import BaseRepository, as_uuid


class IntegrationRepository(BaseRepository[IntegrationModel]):

    def __init__(self, session: AsyncSession):
        super().__init__(IntegrationModel, session)

    async def create(
        self,
        user_id: str,
        type: IntegrationType,
        name: str,
        external_address: Optional[str],
        credential_encrypted: Optional[str],
        config: dict,
        enabled: bool = True,
    ) -> Integration:
        model = IntegrationModel(
            user_id=as_uuid(user_id),
            type=type.value,
            name=name,
            enabled=enabled,
            external_address=external_address,
            credential_encrypted=credential_encrypted,
            config=config or None,
        )
        return self._to_domain(await self.add(model))

    async def get_integrations(self, user_id: str) -> List[Integration]:
        return [self._to_domain(m) for m in await self.list_for_user(user_id)]

    async def find_user_by_address(
        self,
        type: IntegrationType,
        external_address: str,
    ) -> Optional[str]:
        """User id behind an enabled integration, if the address is linked."""
        stmt = (
            select(IntegrationModel.user_id)
            .where(
                IntegrationModel.type == type.value,
                IntegrationModel.external_address == external_address,
                IntegrationModel.enabled.is_(True),
            )
            .order_by(IntegrationModel.created_at.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        user_id = result.scalar_one_or_none()
        return str(user_id) if user_id else None

    def _to_domain(self, model: IntegrationModel) -> Integration:
        return Integration(
            id=str(model.id),
            user_id=str(model.user_id),
            type=IntegrationType(model.type),
            name=model.name,
            enabled=model.enabled,
            external_address=model.external_address,
            config=model.config or {},
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
