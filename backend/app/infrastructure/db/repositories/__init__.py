"""
Repository Layer for the AI Business Assistant

Exports all repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.base_repository import (
    BaseRepository,
    as_uuid,
)
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.infrastructure.db.repositories.expense_repository import ExpenseRepository
from app.infrastructure.db.repositories.knowledge_base_repository import (
    KnowledgeBaseRepository,
)
from app.infrastructure.db.repositories.conversation_repository import (
    ConversationRepository,
)
from app.infrastructure.db.repositories.usage_repository import UsageRepository
from app.infrastructure.db.repositories.notification_repository import (
    NotificationRepository,
)
from app.infrastructure.db.repositories.integration_repository import (
    IntegrationRepository,
)
from app.infrastructure.db.repositories.newsletter_repository import (
    NewsletterRepository,
)
from app.infrastructure.db.repositories.account_repository import (
    AccountDataRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    "as_uuid",
    # Repositories
    "SubscriptionRepository",
    "ExpenseRepository",
    "KnowledgeBaseRepository",
    "ConversationRepository",
    "UsageRepository",
    "NotificationRepository",
    "IntegrationRepository",
    "NewsletterRepository",
    "AccountDataRepository",
]
