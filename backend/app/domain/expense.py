"""
Expense Domain Models

Expense categories, free-text category normalization and the receipt
extraction contract shared by the mock and OCR-backed extractors.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExpenseCategory(str, Enum):
    """Categories accepted by the expenses table."""
    OFFICE_SUPPLIES = "office_supplies"
    TRAVEL = "travel"
    MEALS = "meals"
    SOFTWARE = "software"
    MARKETING = "marketing"
    EQUIPMENT = "equipment"
    PROFESSIONAL_SERVICES = "professional_services"
    UTILITIES = "utilities"
    OTHER = "other"


class ExpenseSource(str, Enum):
    """Where an expense row came from."""
    MANUAL = "manual"
    RECEIPT = "receipt"
    WHATSAPP = "whatsapp"


CATEGORY_ALIASES = {
    "office supplies": ExpenseCategory.OFFICE_SUPPLIES,
    "office": ExpenseCategory.OFFICE_SUPPLIES,
    "food": ExpenseCategory.MEALS,
    "food & dining": ExpenseCategory.MEALS,
    "technology": ExpenseCategory.SOFTWARE,
    "professional services": ExpenseCategory.PROFESSIONAL_SERVICES,
    "health & wellness": ExpenseCategory.OTHER,
    "healthcare": ExpenseCategory.OTHER,
    "entertainment": ExpenseCategory.OTHER,
    "education": ExpenseCategory.OTHER,
}


def normalize_category(raw: Optional[str]) -> ExpenseCategory:
    """Map user, chat or OCR category text onto the enum; unknown text is OTHER."""
    if not raw:
        return ExpenseCategory.OTHER
    key = raw.strip().lower()
    try:
        return ExpenseCategory(key)
    except ValueError:
        return CATEGORY_ALIASES.get(key, ExpenseCategory.OTHER)


# =============================================================================
# Domain Entities
# =============================================================================

class Expense(BaseModel):
    """An expense owned by a single user."""
    id: Optional[str] = None
    user_id: str
    title: str
    description: Optional[str] = None
    amount: float
    category: ExpenseCategory = ExpenseCategory.OTHER
    expense_date: date = Field(..., serialization_alias="date")
    receipt_url: Optional[str] = None
    source: ExpenseSource = ExpenseSource.MANUAL
    external_message_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# Request DTOs
# =============================================================================

class CreateExpenseRequest(BaseModel):
    """Body of POST /create-expense."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    amount: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    expense_date: Optional[date] = Field(default=None, alias="date")


class UpdateExpenseRequest(CreateExpenseRequest):
    """Body of POST /update-expense."""
    expense_id: Optional[str] = Field(default=None, alias="expenseId")


# =============================================================================
# Receipt Extraction Contract
# =============================================================================

class ExtractionConfidence(str, Enum):
    """Confidence tier reported by the extractor."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ExtractedExpense(BaseModel):
    """One expense candidate read off a receipt image."""
    amount: float
    title: str
    description: Optional[str] = None
    category: str = ExpenseCategory.OTHER.value
    date: str = Field(description="YYYY-MM-DD")
    vendor: Optional[str] = None
    tax: Optional[float] = None
    subtotal: Optional[float] = None
    currency: Optional[str] = "USD"

    @field_validator("category", mode="before")
    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        return normalize_category(value).value


class ReceiptExtraction(BaseModel):
    """What any receipt extractor must return."""
    expenses: list[ExtractedExpense]
    confidence: ExtractionConfidence
    raw_data: Optional[dict[str, Any]] = None


class ProcessReceiptRequest(BaseModel):
    """Body of POST /process-receipt."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")
    file_name: str = Field(default="receipt.jpg", alias="fileName")
