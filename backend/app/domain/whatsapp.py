"""
WhatsApp Message Understanding

Keyword heuristics that sort inbound chat text into an expense report,
a general question or something unrecognized, plus the regex extraction
of amount, description and category from expense messages. These are
deliberately simple; false positives and negatives are expected.
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageIntent(str, Enum):
    EXPENSE = "expense"
    GENERAL_QUERY = "general_query"
    UNKNOWN = "unknown"


EXPENSE_KEYWORDS = (
    "spent", "paid", "bought", "purchase", "cost", "expense", "$", "dollar",
    "lunch", "dinner", "coffee", "gas", "fuel", "taxi", "uber", "hotel",
    "flight", "ticket", "receipt", "bill", "invoice",
)

QUERY_KEYWORDS = (
    "how", "what", "when", "where", "why", "help", "question", "tell me",
    "explain", "show me", "report", "summary", "total", "balance",
)

# Checked in order; first match wins.
CATEGORY_KEYWORDS = {
    "food": ("lunch", "dinner", "breakfast", "coffee", "restaurant", "meal"),
    "travel": ("taxi", "uber", "flight", "hotel", "gas", "fuel"),
    "office": ("supplies", "equipment", "software"),
    "marketing": ("advertising", "promotion", "marketing"),
}

AMOUNT_PATTERN = re.compile(r"\$?(\d+(?:\.\d{2})?)")

DESCRIPTION_PATTERNS = (
    re.compile(r"(?:spent|paid|bought|purchase).*?(?:on|for)\s+(.+?)(?:\s+(?:at|from)\s+(.+?))?$", re.IGNORECASE),
    re.compile(r"(.+?)\s+(?:cost|was)\s+\$?\d+", re.IGNORECASE),
    re.compile(r"\$?\d+\s+(?:for|on)\s+(.+?)$", re.IGNORECASE),
)


class MessageExpense(BaseModel):
    """Fields pulled out of an expense message."""
    amount: Optional[float] = None
    description: str = ""
    category: str = "other"

    @property
    def is_complete(self) -> bool:
        return self.amount is not None and bool(self.description)


class ClassifiedMessage(BaseModel):
    intent: MessageIntent
    text: str
    expense: Optional[MessageExpense] = None


def normalize_text(text: str) -> str:
    return text.lower().strip()


def is_expense_message(text: str) -> bool:
    return any(keyword in text for keyword in EXPENSE_KEYWORDS)


def is_general_query(text: str) -> bool:
    return any(keyword in text for keyword in QUERY_KEYWORDS)


def detect_category(text: str) -> str:
    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return "other"


def extract_expense(text: str) -> MessageExpense:
    """Regex extraction; missing pieces are left empty rather than guessed."""
    amount_match = AMOUNT_PATTERN.search(text)
    amount = float(amount_match.group(1)) if amount_match else None

    description = ""
    for pattern in DESCRIPTION_PATTERNS:
        match = pattern.search(text)
        if match:
            description = match.group(1).strip()
            break

    return MessageExpense(
        amount=amount,
        description=description,
        category=detect_category(text),
    )


def classify_message(text: str) -> ClassifiedMessage:
    """Expense keywords take precedence over question keywords."""
    normalized = normalize_text(text)
    if is_expense_message(normalized):
        return ClassifiedMessage(
            intent=MessageIntent.EXPENSE,
            text=normalized,
            expense=extract_expense(normalized),
        )
    if is_general_query(normalized):
        return ClassifiedMessage(intent=MessageIntent.GENERAL_QUERY, text=normalized)
    return ClassifiedMessage(intent=MessageIntent.UNKNOWN, text=normalized)


# =============================================================================
# Canned replies
# =============================================================================

HELP_REPLY = (
    "Hi! I'm your AI business assistant. I can help you:\n\n"
    "💰 Track expenses - just tell me about your spending\n"
    "📊 Answer business questions\n"
    "🧾 Process receipt images\n\n"
    "Try saying something like: 'I spent $25 on lunch at Joe's Cafe'"
)

GENERAL_QUERY_REPLY = (
    "I'm here to help with your business questions! 🤖\n\n"
    "I can assist with:\n"
    "📊 Expense tracking and reports\n"
    "💼 Business insights\n"
    "📈 Financial summaries\n\n"
    "What would you like to know?"
)

NEED_MORE_DETAILS_REPLY = (
    "I need more details to record this expense. Please include:\n\n"
    "💰 Amount (e.g., $25.50)\n"
    "📝 What it was for\n\n"
    "Example: 'I spent $25 on lunch at Joe's Cafe'"
)

EXPENSE_FAILED_REPLY = (
    "Sorry, I couldn't process that expense. Please try again with the format:\n"
    "'I spent $[amount] on [description]'"
)

UNLINKED_NUMBER_REPLY = (
    "This number isn't linked to an account yet. Connect WhatsApp from the "
    "Integrations page of your dashboard, then send your expense again."
)

PROCESSING_ERROR_REPLY = "Sorry, I encountered an error processing your message. Please try again."


def expense_recorded_reply(expense: MessageExpense) -> str:
    amount = f"{expense.amount:g}" if expense.amount is not None else "?"
    return (
        "✅ Expense recorded successfully!\n\n"
        f"💰 Amount: ${amount}\n"
        f"📝 Description: {expense.description}\n"
        f"📂 Category: {expense.category.title()}\n\n"
        "Your expense has been added to your dashboard."
    )


# =============================================================================
# Webhook envelope
# =============================================================================

class TextBody(BaseModel):
    body: str


class InboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender: str = Field(..., alias="from")
    timestamp: Optional[str] = None
    type: str
    text: Optional[TextBody] = None


class ChangeValue(BaseModel):
    messaging_product: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    messages: list[InboundMessage] = Field(default_factory=list)
    statuses: list[dict[str, Any]] = Field(default_factory=list)


class Change(BaseModel):
    field: str
    value: ChangeValue


class Entry(BaseModel):
    id: Optional[str] = None
    changes: list[Change] = Field(default_factory=list)


class WhatsAppWebhookPayload(BaseModel):
    object: str
    entry: list[Entry] = Field(default_factory=list)
