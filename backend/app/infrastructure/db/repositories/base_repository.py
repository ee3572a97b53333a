"""
Base Repository for the AI Business Assistant

Generic async repository for tables whose rows belong to a single user.
Every read and write is scoped by ``user_id``.
"""

from typing import TypeVar, Generic, List, Optional, Type, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.infrastructure.exceptions import ValidationError


ModelType = TypeVar("ModelType", bound=SQLModel)


def as_uuid(value: Union[str, UUID], field: str = "user_id") -> UUID:
    """Parse an id coming from a request body or token."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}", {"field": field})


class BaseRepository(Generic[ModelType]):
    """
    Owner-scoped CRUD helpers.

    Args:
        model: The SQLModel table class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def add(self, db_obj: ModelType) -> ModelType:
        """Insert a row and return it with server defaults loaded."""
        self._session.add(db_obj)
        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    async def get_owned(
        self,
        id: Union[str, UUID],
        user_id: Union[str, UUID],
    ) -> Optional[ModelType]:
        """Fetch a row by id only if it belongs to ``user_id``."""
        stmt = select(self._model).where(
            self._model.id == as_uuid(id, "id"),
            self._model.user_id == as_uuid(user_id),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: Union[str, UUID],
        limit: int = 100,
    ) -> List[ModelType]:
        stmt = (
            select(self._model)
            .where(self._model.user_id == as_uuid(user_id))
            .order_by(self._model.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update_owned(
        self,
        id: Union[str, UUID],
        user_id: Union[str, UUID],
        values: dict,
    ) -> Optional[ModelType]:
        """Apply ``values`` to the owner's row; None when no such row."""
        db_obj = await self.get_owned(id, user_id)
        if db_obj is None:
            return None

        for field, value in values.items():
            setattr(db_obj, field, value)

        self._session.add(db_obj)
        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj
