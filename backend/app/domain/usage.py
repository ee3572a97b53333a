"""
Usage Domain Models

Per-user, per-calendar-month counters and the plan quota rules that
gate receipt uploads. Month rollover is detected by comparing
``year * 12 + month`` indices, so a counter written in an earlier month
reads as zero without any reset job.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


UNLIMITED = -1


class UsageFeature(str, Enum):
    """Metered features; values double as counter column names."""
    RECEIPT_UPLOADS = "receipt_uploads"
    AI_CONTENT_GENERATIONS = "ai_content_generations"


class PlanLimits(BaseModel):
    """Monthly quotas for a plan. -1 means unlimited."""
    receipt_uploads: int
    ai_content_generations: int

    def for_feature(self, feature: UsageFeature) -> int:
        return getattr(self, feature.value)


FREE_PLAN_LIMITS = PlanLimits(receipt_uploads=5, ai_content_generations=5)
PAID_PLAN_LIMITS = PlanLimits(receipt_uploads=UNLIMITED, ai_content_generations=UNLIMITED)


def limits_for(is_subscribed: bool, free_limits: PlanLimits = FREE_PLAN_LIMITS) -> PlanLimits:
    return PAID_PLAN_LIMITS if is_subscribed else free_limits


def period_index(moment: Union[date, datetime]) -> int:
    """Months since year 0; increases by exactly one at every month change."""
    return moment.year * 12 + (moment.month - 1)


class UsageCounter(BaseModel):
    """Stored counters for one user."""
    user_id: str
    period_index: int
    receipt_uploads: int = 0
    ai_content_generations: int = 0

    class Config:
        from_attributes = True

    def count_for(self, feature: UsageFeature, now: Union[date, datetime]) -> int:
        """Counter value as of ``now``; stale periods count as zero."""
        if self.period_index < period_index(now):
            return 0
        return getattr(self, feature.value)


def current_count(
    counter: Optional[UsageCounter],
    feature: UsageFeature,
    now: Union[date, datetime],
) -> int:
    if counter is None:
        return 0
    return counter.count_for(feature, now)


def can_upload_receipt(
    counter: Optional[UsageCounter],
    is_subscribed: bool,
    now: Union[date, datetime],
    free_limit: int = FREE_PLAN_LIMITS.receipt_uploads,
) -> bool:
    """Subscribers always may; free users until the monthly limit is reached."""
    if is_subscribed or free_limit == UNLIMITED:
        return True
    return current_count(counter, UsageFeature.RECEIPT_UPLOADS, now) < free_limit


def can_generate_ai_content(
    counter: Optional[UsageCounter],
    is_subscribed: bool,
    now: Union[date, datetime],
) -> bool:
    # AI content is unmetered for every plan; the counter is still recorded.
    return True


def days_until_reset(today: Union[date, datetime]) -> int:
    """Days left until the first day of next month."""
    if isinstance(today, datetime):
        today = today.date()
    if today.month == 12:
        first_of_next = date(today.year + 1, 1, 1)
    else:
        first_of_next = date(today.year, today.month + 1, 1)
    return (first_of_next - today).days


# =============================================================================
# Response DTOs
# =============================================================================

class ReceiptLimitStatus(BaseModel):
    """Response of GET /check-receipt-limit."""
    success: bool = True
    current_count: int
    monthly_limit: Union[int, str] = Field(description="Integer limit or 'unlimited'")
    can_add_receipt: bool
    plan: str
    days_until_reset: int


class ReceiptIncrementResult(BaseModel):
    """Response of POST /check-receipt-limit."""
    success: bool = True
    can_add_receipt: bool
    current_count: int
    limit_reached: bool


class FeatureUsage(BaseModel):
    feature: UsageFeature
    used: int
    limit: int
    allowed: bool


class UsageSnapshot(BaseModel):
    """Response of GET /usage."""
    plan: str
    period_index: int
    features: list[FeatureUsage]
