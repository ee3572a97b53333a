"""
Expense Repository

Owner-scoped reads and writes on the expenses table.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.expense import Expense, ExpenseCategory, ExpenseSource
from app.infrastructure.db.models.expense import ExpenseModel
from app.infrastructure.db.repositories.base_repository import BaseRepository, as_uuid


class ExpenseRepository(BaseRepository[ExpenseModel]):

    def __init__(self, session: AsyncSession):
        super().__init__(ExpenseModel, session)

    async def create(self, expense: Expense) -> Expense:
        model = ExpenseModel(
            user_id=as_uuid(expense.user_id),
            title=expense.title,
            description=expense.description,
            amount=expense.amount,
            category=expense.category.value,
            expense_date=expense.expense_date,
            receipt_url=expense.receipt_url,
            source=expense.source.value,
            external_message_id=expense.external_message_id,
        )
        return self._to_domain(await self.add(model))

    async def update(self, expense_id: str, user_id: str, values: dict) -> Optional[Expense]:
        model = await self.update_owned(expense_id, user_id, values)
        return self._to_domain(model) if model else None

    async def get_by_external_message_id(
        self,
        user_id: str,
        external_message_id: str,
    ) -> Optional[Expense]:
        """Already-recorded expense for a chat message (webhook redelivery)."""
        stmt = select(ExpenseModel).where(
            ExpenseModel.user_id == as_uuid(user_id),
            ExpenseModel.external_message_id == external_message_id,
        )
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    def _to_domain(self, model: ExpenseModel) -> Expense:
        return Expense(
            id=str(model.id),
            user_id=str(model.user_id),
            title=model.title,
            description=model.description,
            amount=float(model.amount),
            category=ExpenseCategory(model.category),
            expense_date=model.expense_date,
            receipt_url=model.receipt_url,
            source=ExpenseSource(model.source),
            external_message_id=model.external_message_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
