"""
SQLModel ORM Models for the AI Business Assistant

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    BaseModel,
    TimestampMixin,
    UUIDMixin,
)
from app.infrastructure.db.models.subscription import UserSubscriptionModel
from app.infrastructure.db.models.expense import ExpenseModel
from app.infrastructure.db.models.knowledge_base import KnowledgeBaseModel
from app.infrastructure.db.models.conversation import ConversationModel, MessageModel
from app.infrastructure.db.models.usage import UsageCounterModel
from app.infrastructure.db.models.notification import (
    NotificationPreferenceModel,
    NotificationHistoryModel,
)
from app.infrastructure.db.models.integration import IntegrationModel
from app.infrastructure.db.models.newsletter import NewsletterSubscriptionModel
from app.infrastructure.db.models.profile import ProfileModel


__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    # Billing
    "UserSubscriptionModel",
    # Expenses / knowledge
    "ExpenseModel",
    "KnowledgeBaseModel",
    # Chat
    "ConversationModel",
    "MessageModel",
    # Usage
    "UsageCounterModel",
    # Notifications
    "NotificationPreferenceModel",
    "NotificationHistoryModel",
    # Integrations
    "IntegrationModel",
    "NewsletterSubscriptionModel",
    "ProfileModel",
]
