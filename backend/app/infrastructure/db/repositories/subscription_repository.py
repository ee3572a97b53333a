"""
Subscription Repository

Data access for the per-user billing row written by the Stripe webhook.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4, UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.subscription import UserSubscriptionModel
from app.infrastructure.db.repositories.base_repository import as_uuid
from app.domain.subscription import Subscription, SubscriptionStatus


logger = logging.getLogger(__name__)


class SubscriptionRepository:
    """
    Repository for subscription data access.

    Maps between UserSubscriptionModel rows and Subscription entities.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        statement = select(UserSubscriptionModel).where(
            UserSubscriptionModel.user_id == as_uuid(user_id)
        )
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_by_stripe_subscription_id(
        self,
        stripe_subscription_id: str,
    ) -> Optional[Subscription]:
        statement = select(UserSubscriptionModel).where(
            UserSubscriptionModel.stripe_subscription_id == stripe_subscription_id
        )
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def upsert(self, subscription: Subscription) -> Subscription:
        """
        Create or overwrite the user's row in one statement.

        Every column comes from ``subscription``, so applying the same
        entity twice leaves the row unchanged.
        """
        now = subscription.updated_at or datetime.now(timezone.utc)

        values = {
            "id": UUID(subscription.id) if subscription.id else uuid4(),
            "user_id": as_uuid(subscription.user_id),
            "stripe_customer_id": subscription.stripe_customer_id,
            "stripe_subscription_id": subscription.stripe_subscription_id,
            "plan_name": subscription.plan_name,
            "status": subscription.status.value,
            "current_period_start": subscription.current_period_start,
            "current_period_end": subscription.current_period_end,
            "cancel_at_period_end": subscription.cancel_at_period_end,
            "created_at": subscription.created_at or now,
            "updated_at": now,
        }

        stmt = pg_insert(UserSubscriptionModel).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "stripe_customer_id": stmt.excluded.stripe_customer_id,
                "stripe_subscription_id": stmt.excluded.stripe_subscription_id,
                "plan_name": stmt.excluded.plan_name,
                "status": stmt.excluded.status,
                "current_period_start": stmt.excluded.current_period_start,
                "current_period_end": stmt.excluded.current_period_end,
                "cancel_at_period_end": stmt.excluded.cancel_at_period_end,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(UserSubscriptionModel)

        result = await self._session.execute(stmt)
        model = result.scalar_one()
        await self._session.flush()

        logger.info(f"Upserted subscription for user {subscription.user_id} ({subscription.status.value})")
        return self._to_domain(model)

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: UserSubscriptionModel) -> Subscription:
        return Subscription(
            id=str(model.id),
            user_id=str(model.user_id),
            stripe_customer_id=model.stripe_customer_id,
            stripe_subscription_id=model.stripe_subscription_id,
            plan_name=model.plan_name,
            status=SubscriptionStatus(model.status),
            current_period_start=model.current_period_start,
            current_period_end=model.current_period_end,
            cancel_at_period_end=model.cancel_at_period_end or False,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
