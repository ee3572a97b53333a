"""
Usage API Routes

Monthly quota status and counter increments for the signed-in user.
Counters roll over implicitly when the month changes.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import CurrentUserId, SettingsDep, UsageServiceDep
from app.domain.subscription import FREE_PLAN_NAME
from app.domain.usage import (
    FeatureUsage,
    ReceiptIncrementResult,
    ReceiptLimitStatus,
    UsageSnapshot,
    days_until_reset,
)
from app.infrastructure.exceptions import AssistantError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/check-receipt-limit", response_model=ReceiptLimitStatus)
async def get_receipt_limit(
    user_id: CurrentUserId,
    usage_service: UsageServiceDep,
    settings: SettingsDep,
):
    """
    Current receipt count against the monthly limit.

    A failed lookup must not block uploads, so it answers "allowed".
    """
    try:
        return await usage_service.get_receipt_status(user_id)
    except (SQLAlchemyError, AssistantError) as e:
        logger.warning(f"Receipt limit lookup failed for user {user_id}, allowing: {e}")
        return ReceiptLimitStatus(
            current_count=0,
            monthly_limit=settings.free_receipt_uploads_limit,
            can_add_receipt=True,
            plan=FREE_PLAN_NAME,
            days_until_reset=days_until_reset(datetime.now(timezone.utc)),
        )


@router.post("/check-receipt-limit", response_model=ReceiptIncrementResult)
async def increment_receipt_count(user_id: CurrentUserId, usage_service: UsageServiceDep):
    """Count one receipt upload; 403 once the free monthly limit is used up."""
    return await usage_service.record_receipt_upload(user_id)


@router.get("/usage", response_model=UsageSnapshot)
async def get_usage(user_id: CurrentUserId, usage_service: UsageServiceDep):
    return await usage_service.snapshot(user_id)


@router.post("/usage/ai-content", response_model=FeatureUsage)
async def record_ai_content(user_id: CurrentUserId, usage_service: UsageServiceDep):
    """Count one AI content generation. Always allowed."""
    return await usage_service.record_ai_content(user_id)
