# API Routes Module
from app.api.routes import (
    account,
    ai,
    billing,
    expenses,
    integrations,
    knowledge_base,
    newsletter,
    notifications,
    receipts,
    usage,
    voice,
    webhooks,
    whatsapp,
)

__all__ = [
    "account",
    "ai",
    "billing",
    "expenses",
    "integrations",
    "knowledge_base",
    "newsletter",
    "notifications",
    "receipts",
    "usage",
    "voice",
    "webhooks",
    "whatsapp",
]
