"""
Expense SQLModel

Expenses entered manually, extracted from receipts or reported over WhatsApp.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import Column, Date, Numeric, String, Text
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class ExpenseModel(BaseModel, table=True):
    """Expense database table model."""

    __tablename__ = "expenses"

    user_id: UUID = Field(..., index=True, nullable=False)

    title: str = Field(..., sa_column=Column(String(255), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    amount: float = Field(..., sa_column=Column(Numeric(12, 2, asdecimal=False), nullable=False))
    category: str = Field(default="other", sa_column=Column(String(50), nullable=False))

    # "date" is the column name the dashboard reads
    expense_date: date = Field(..., sa_column=Column("date", Date, nullable=False))

    receipt_url: Optional[str] = Field(default=None, sa_column=Column(Text))
    source: str = Field(default="manual", sa_column=Column(String(20), nullable=False))
    external_message_id: Optional[str] = Field(default=None, max_length=255, index=True)

