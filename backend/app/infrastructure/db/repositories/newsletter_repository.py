"""
Newsletter Repository
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.newsletter import NewsletterSubscription
from app.infrastructure.db.models.newsletter import NewsletterSubscriptionModel
from app.infrastructure.exceptions import DuplicateError


UNIQUE_VIOLATION = "23505"


class NewsletterRepository:

    def __init__(self, session: AsyncSession):
        self._session = session

    async def subscribe(self, subscription: NewsletterSubscription) -> NewsletterSubscription:
        """
        Insert a signup.

        Raises:
            DuplicateError: the email is already subscribed
        """
        model = NewsletterSubscriptionModel(
            email=subscription.email,
            source=subscription.source,
            user_agent=subscription.user_agent,
            ip_address=subscription.ip_address,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
        except IntegrityError as e:
            code = getattr(e.orig, "sqlstate", None) or getattr(e.orig, "pgcode", None)
            if code not in (None, UNIQUE_VIOLATION):
                raise
            raise DuplicateError(
                "Email already subscribed",
                operation="insert",
                table="newsletter_subscriptions",
                original_error=e,
            )

        return NewsletterSubscription(
            id=str(model.id),
            email=model.email,
            source=model.source,
            user_agent=model.user_agent,
            ip_address=model.ip_address,
        )
