"""
Expense Service

The single path for creating and updating expenses, shared by the REST
endpoints and the WhatsApp webhook.
"""

import logging
from datetime import date
from typing import Optional

from app.domain.expense import Expense, ExpenseSource, normalize_category
from app.infrastructure.db.repositories.expense_repository import ExpenseRepository
from app.infrastructure.exceptions import NotFoundError, ValidationError


logger = logging.getLogger(__name__)


class ExpenseService:

    def __init__(self, expense_repo: ExpenseRepository):
        self._expense_repo = expense_repo

    @staticmethod
    def _require(title: Optional[str], amount: Optional[float]) -> None:
        missing = [name for name, value in (("title", title), ("amount", amount)) if value in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", {"missing": missing})

    async def create_expense(
        self,
        user_id: str,
        title: Optional[str],
        amount: Optional[float],
        category: Optional[str] = None,
        description: Optional[str] = None,
        receipt_url: Optional[str] = None,
        expense_date: Optional[date] = None,
        source: ExpenseSource = ExpenseSource.MANUAL,
        external_message_id: Optional[str] = None,
    ) -> Expense:
        """
        Validate, normalize and store a new expense.

        Free-text categories are mapped onto the category enum; the date
        defaults to today.
        """
        self._require(title, amount)

        expense = Expense(
            user_id=user_id,
            title=title,
            description=description,
            amount=amount,
            category=normalize_category(category),
            expense_date=expense_date or date.today(),
            receipt_url=receipt_url,
            source=source,
            external_message_id=external_message_id,
        )
        created = await self._expense_repo.create(expense)
        logger.info(f"Created {source.value} expense {created.id} for user {user_id}")
        return created

    async def update_expense(
        self,
        expense_id: Optional[str],
        user_id: str,
        title: Optional[str],
        amount: Optional[float],
        category: Optional[str] = None,
        description: Optional[str] = None,
        receipt_url: Optional[str] = None,
        expense_date: Optional[date] = None,
    ) -> Expense:
        """
        Raises:
            ValidationError: expense id, title or amount missing
            NotFoundError: no such expense owned by ``user_id``
        """
        if not expense_id:
            raise ValidationError("Missing required fields: expenseId", {"missing": ["expenseId"]})
        self._require(title, amount)

        values = {
            "title": title,
            "amount": amount,
            "category": normalize_category(category).value,
            "description": description,
            "expense_date": expense_date or date.today(),
        }
        if receipt_url is not None:
            values["receipt_url"] = receipt_url

        updated = await self._expense_repo.update(expense_id, user_id, values)
        if updated is None:
            raise NotFoundError("Expense not found", operation="update", table="expenses")
        return updated
