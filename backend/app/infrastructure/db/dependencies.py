"""
Dependency Injection Providers for the AI Business Assistant

FastAPI dependencies for database sessions and repositories. Tests swap
any of these out through ``app.dependency_overrides``.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.database import get_session
from app.infrastructure.db.repositories import (
    AccountDataRepository,
    ConversationRepository,
    ExpenseRepository,
    IntegrationRepository,
    KnowledgeBaseRepository,
    NewsletterRepository,
    NotificationRepository,
    SubscriptionRepository,
    UsageRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_subscription_repository(
    session: SessionDep,
) -> AsyncGenerator[SubscriptionRepository, None]:
    """
    Dependency provider for SubscriptionRepository.

    Usage:
        @router.post("/stripe-webhook")
        async def webhook(repo: SubscriptionRepoDep):
            ...
    """
    yield SubscriptionRepository(session)


async def get_expense_repository(session: SessionDep) -> AsyncGenerator[ExpenseRepository, None]:
    yield ExpenseRepository(session)


async def get_knowledge_base_repository(
    session: SessionDep,
) -> AsyncGenerator[KnowledgeBaseRepository, None]:
    yield KnowledgeBaseRepository(session)


async def get_conversation_repository(
    session: SessionDep,
) -> AsyncGenerator[ConversationRepository, None]:
    yield ConversationRepository(session)


async def get_usage_repository(session: SessionDep) -> AsyncGenerator[UsageRepository, None]:
    yield UsageRepository(session)


async def get_notification_repository(
    session: SessionDep,
) -> AsyncGenerator[NotificationRepository, None]:
    yield NotificationRepository(session)


async def get_integration_repository(
    session: SessionDep,
) -> AsyncGenerator[IntegrationRepository, None]:
    yield IntegrationRepository(session)


async def get_newsletter_repository(
    session: SessionDep,
) -> AsyncGenerator[NewsletterRepository, None]:
    yield NewsletterRepository(session)


async def get_account_data_repository(
    session: SessionDep,
) -> AsyncGenerator[AccountDataRepository, None]:
    yield AccountDataRepository(session)


# Type aliases for repository dependencies
SubscriptionRepoDep = Annotated[SubscriptionRepository, Depends(get_subscription_repository)]
ExpenseRepoDep = Annotated[ExpenseRepository, Depends(get_expense_repository)]
KnowledgeBaseRepoDep = Annotated[KnowledgeBaseRepository, Depends(get_knowledge_base_repository)]
ConversationRepoDep = Annotated[ConversationRepository, Depends(get_conversation_repository)]
UsageRepoDep = Annotated[UsageRepository, Depends(get_usage_repository)]
NotificationRepoDep = Annotated[NotificationRepository, Depends(get_notification_repository)]
IntegrationRepoDep = Annotated[IntegrationRepository, Depends(get_integration_repository)]
NewsletterRepoDep = Annotated[NewsletterRepository, Depends(get_newsletter_repository)]
AccountDataRepoDep = Annotated[AccountDataRepository, Depends(get_account_data_repository)]
