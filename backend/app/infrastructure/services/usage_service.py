"""
Usage Service

Plan-aware quota checks and counter increments for metered features.
Plan resolution reads the billing row; the counter arithmetic lives in
app.domain.usage and the atomic increment in UsageRepository.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from app.config.settings import Settings
from app.domain.subscription import DEFAULT_PAID_PLAN_NAME, FREE_PLAN_NAME, is_paid_subscription
from app.domain.usage import (
    UNLIMITED,
    FeatureUsage,
    PlanLimits,
    ReceiptIncrementResult,
    ReceiptLimitStatus,
    UsageFeature,
    UsageSnapshot,
    can_generate_ai_content,
    current_count,
    days_until_reset,
    limits_for,
    period_index,
)
from app.infrastructure.db.repositories.subscription_repository import SubscriptionRepository
from app.infrastructure.db.repositories.usage_repository import UsageRepository
from app.infrastructure.exceptions import UsageLimitError


logger = logging.getLogger(__name__)


class UsageService:
    """
    Monthly usage limits.

    Receipt uploads are capped for free users; AI content generation is
    counted for every plan but never refused.
    """

    def __init__(
        self,
        usage_repo: UsageRepository,
        subscription_repo: SubscriptionRepository,
        settings: Settings,
    ):
        self._usage_repo = usage_repo
        self._subscription_repo = subscription_repo
        self._free_limits = PlanLimits(
            receipt_uploads=settings.free_receipt_uploads_limit,
            ai_content_generations=settings.free_ai_content_limit,
        )

    async def _plan(self, user_id: str) -> tuple[bool, str]:
        subscription = await self._subscription_repo.get_by_user_id(user_id)
        if is_paid_subscription(subscription):
            return True, subscription.plan_name or DEFAULT_PAID_PLAN_NAME
        return False, FREE_PLAN_NAME

    # =========================================================================
    # Receipts
    # =========================================================================

    async def get_receipt_status(self, user_id: str, now: Optional[datetime] = None) -> ReceiptLimitStatus:
        now = now or datetime.now(timezone.utc)
        is_subscribed, plan = await self._plan(user_id)
        counter = await self._usage_repo.get(user_id)
        count = current_count(counter, UsageFeature.RECEIPT_UPLOADS, now)
        limit = limits_for(is_subscribed, self._free_limits).receipt_uploads

        return ReceiptLimitStatus(
            current_count=count,
            monthly_limit="unlimited" if limit == UNLIMITED else limit,
            can_add_receipt=limit == UNLIMITED or count < limit,
            plan=plan,
            days_until_reset=days_until_reset(now),
        )

    async def record_receipt_upload(self, user_id: str, now: Optional[datetime] = None) -> ReceiptIncrementResult:
        """
        Count one receipt upload.

        Raises:
            UsageLimitError: the free monthly limit is already used up
        """
        now = now or datetime.now(timezone.utc)
        is_subscribed, _ = await self._plan(user_id)
        limit = limits_for(is_subscribed, self._free_limits).receipt_uploads

        counter = await self._usage_repo.increment(
            user_id, UsageFeature.RECEIPT_UPLOADS, period_index(now), limit
        )
        if counter is None:
            stored = await self._usage_repo.get(user_id)
            raise UsageLimitError(
                f"Monthly receipt upload limit of {limit} reached. Upgrade to add more receipts.",
                {
                    "current_count": current_count(stored, UsageFeature.RECEIPT_UPLOADS, now),
                    "monthly_limit": limit,
                    "limit_reached": True,
                },
            )

        count = counter.receipt_uploads
        return ReceiptIncrementResult(
            can_add_receipt=limit == UNLIMITED or count < limit,
            current_count=count,
            limit_reached=limit != UNLIMITED and count >= limit,
        )

    # =========================================================================
    # AI content
    # =========================================================================

    async def record_ai_content(self, user_id: str, now: Optional[datetime] = None) -> FeatureUsage:
        now = now or datetime.now(timezone.utc)
        is_subscribed, _ = await self._plan(user_id)
        limit = limits_for(is_subscribed, self._free_limits).ai_content_generations
        stored = await self._usage_repo.get(user_id)

        if not can_generate_ai_content(stored, is_subscribed, now):
            raise UsageLimitError("AI content generation limit reached")

        # Recorded without a guard; the quota is informational for this feature.
        counter = await self._usage_repo.increment(
            user_id, UsageFeature.AI_CONTENT_GENERATIONS, period_index(now), UNLIMITED
        )
        return FeatureUsage(
            feature=UsageFeature.AI_CONTENT_GENERATIONS,
            used=counter.ai_content_generations,
            limit=limit,
            allowed=True,
        )

    # =========================================================================
    # Snapshot
    # =========================================================================

    async def snapshot(self, user_id: str, now: Optional[datetime] = None) -> UsageSnapshot:
        now = now or datetime.now(timezone.utc)
        is_subscribed, plan = await self._plan(user_id)
        limits = limits_for(is_subscribed, self._free_limits)
        counter = await self._usage_repo.get(user_id)

        features = []
        for feature in UsageFeature:
            used = current_count(counter, feature, now)
            limit = limits.for_feature(feature)
            if feature == UsageFeature.AI_CONTENT_GENERATIONS:
                allowed = can_generate_ai_content(counter, is_subscribed, now)
            else:
                allowed = limit == UNLIMITED or used < limit
            features.append(FeatureUsage(feature=feature, used=used, limit=limit, allowed=allowed))

        return UsageSnapshot(plan=plan, period_index=period_index(now), features=features)
