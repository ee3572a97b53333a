"""
Chat Domain Models

Conversation/message entities, prompt construction for the chat proxy
and the constrained label set for the document categorizer.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, List

from pydantic import BaseModel, ConfigDict, Field


CHAT_SYSTEM_PROMPT = (
    "You are a helpful AI business assistant. You help users with document "
    "management, business questions, and general assistance. Be concise and "
    "professional."
)

MAX_CONTEXT_MESSAGES = 20


class MessageRole(str, Enum):
    """Role of the message sender."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A stored conversation message."""
    id: Optional[str] = None
    conversation_id: str
    role: MessageRole
    content: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BusinessContext(BaseModel):
    """Knowledge-base facts folded into the system prompt."""
    business_name: Optional[str] = None
    industry: Optional[str] = None
    target_audience: Optional[str] = None
    products_services: Optional[str] = None


def build_system_prompt(context: Iterable[BusinessContext] = ()) -> str:
    """Fixed system prompt, extended with the user's business profile when known."""
    lines = []
    for entry in context:
        facts = [
            f"{label}: {value}"
            for label, value in (
                ("Business", entry.business_name),
                ("Industry", entry.industry),
                ("Audience", entry.target_audience),
                ("Products/services", entry.products_services),
            )
            if value
        ]
        if facts:
            lines.append("- " + "; ".join(facts))

    if not lines:
        return CHAT_SYSTEM_PROMPT
    return CHAT_SYSTEM_PROMPT + "\n\nBusiness profile:\n" + "\n".join(lines)


def build_completion_messages(
    history: List[ChatMessage],
    message: str,
    system_prompt: str = CHAT_SYSTEM_PROMPT,
    limit: int = MAX_CONTEXT_MESSAGES,
) -> List[dict]:
    """
    Assemble the message list sent to the language model.

    ``history`` must already be ordered oldest first; only the last
    ``limit`` entries are kept.
    """
    recent = history[-limit:] if limit > 0 else []
    messages = [{"role": MessageRole.SYSTEM.value, "content": system_prompt}]
    messages.extend({"role": m.role.value, "content": m.content} for m in recent)
    messages.append({"role": MessageRole.USER.value, "content": message})
    return messages


class ChatRequest(BaseModel):
    """Body of POST /ai-chat."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    user_id: Optional[str] = Field(default=None, alias="userId")


class ChatResponse(BaseModel):
    message: str
    success: bool = True


# =============================================================================
# Document Categorizer
# =============================================================================

class DocumentCategory(str, Enum):
    """The only labels the categorizer may return."""
    CONTRACTS = "contracts"
    INVOICES = "invoices"
    RECEIPTS = "receipts"
    REPORTS = "reports"
    PRESENTATIONS = "presentations"
    IMAGES = "images"
    LEGAL = "legal"
    FINANCIAL = "financial"
    MARKETING = "marketing"
    OTHER = "other"


CATEGORIZER_SYSTEM_PROMPT = (
    "You are a document categorization assistant. Based on the filename, file "
    "type, and size, categorize documents into one of these categories: "
    + ", ".join(c.value for c in DocumentCategory)
    + ". Respond with only the category name in lowercase."
)


def build_categorizer_prompt(file_name: str, file_type: str, file_size: int) -> str:
    return (
        "Categorize this document:\n"
        f"Filename: {file_name}\n"
        f"Type: {file_type}\n"
        f"Size: {file_size} bytes"
    )


def parse_category(raw: Optional[str]) -> DocumentCategory:
    """Trim and lowercase the model output; anything off-list becomes OTHER."""
    if not raw:
        return DocumentCategory.OTHER
    label = raw.strip().lower().strip(".")
    try:
        return DocumentCategory(label)
    except ValueError:
        return DocumentCategory.OTHER


class CategorizeRequest(BaseModel):
    """Body of POST /ai-document-categorizer."""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(default="", alias="fileName")
    file_type: str = Field(default="application/octet-stream", alias="fileType")
    file_size: int = Field(default=0, alias="fileSize")
