"""
Subscription Domain Models

Enums, DTOs and the webhook reconciliation function for the billing
bounded context. Nothing in this module performs I/O: the webhook route
loads the current row, calls ``reconcile`` and persists what it returns.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.infrastructure.exceptions import WebhookProcessingError


FREE_PLAN_NAME = "Free"
DEFAULT_PAID_PLAN_NAME = "Business Pro"
CHECKOUT_PERIOD = timedelta(days=30)


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"
    INCOMPLETE = "incomplete"


class BillingEventType(str, Enum):
    """Stripe event types the webhook processor acts on."""
    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


# Stripe spells it "canceled"; the local enum keeps the original table's spelling.
PROVIDER_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "paused": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELLED,
    "cancelled": SubscriptionStatus.CANCELLED,
    "incomplete": SubscriptionStatus.INCOMPLETE,
    "incomplete_expired": SubscriptionStatus.CANCELLED,
}


# =============================================================================
# Domain Entities
# =============================================================================

class Subscription(BaseModel):
    """One logical billing-state row per user."""
    id: Optional[str] = None
    user_id: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    plan_name: str = FREE_PLAN_NAME
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def is_paid_subscription(subscription: Optional[Subscription]) -> bool:
    """No row means the free plan; a row counts only while active or trialing."""
    if subscription is None or subscription.stripe_subscription_id is None:
        return False
    return subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


def map_provider_status(provider_status: Optional[str]) -> SubscriptionStatus:
    """Map a Stripe subscription status onto the local enum."""
    if not provider_status:
        return SubscriptionStatus.INCOMPLETE
    return PROVIDER_STATUS_MAP.get(provider_status, SubscriptionStatus.INCOMPLETE)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a key from a dict or a StripeObject without assuming dict methods."""
    if obj is None:
        return default
    try:
        value = obj[name]
    except (KeyError, TypeError, AttributeError):
        return default
    return default if value is None else value


def _as_id(value: Any) -> Optional[str]:
    """Stripe references are either ids or expanded objects."""
    if value is None or isinstance(value, str):
        return value
    return _field(value, "id")


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class ProviderSubscription(BaseModel):
    """The provider's authoritative snapshot of a subscription."""
    id: str
    customer: Optional[str] = None
    status: Optional[str] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_object(cls, obj: Any) -> "ProviderSubscription":
        """Build from a webhook payload dict or a retrieved stripe.Subscription."""
        period_start = _field(obj, "current_period_start")
        period_end = _field(obj, "current_period_end")

        # Newer API versions moved the period bounds onto subscription items.
        if period_start is None or period_end is None:
            items = _field(_field(obj, "items"), "data") or []
            if items:
                period_start = period_start or _field(items[0], "current_period_start")
                period_end = period_end or _field(items[0], "current_period_end")

        raw_metadata = _field(obj, "metadata") or {}
        metadata = {
            key: _field(raw_metadata, key)
            for key in ("user_id", "plan_name")
            if _field(raw_metadata, key) is not None
        }

        return cls(
            id=_field(obj, "id"),
            customer=_as_id(_field(obj, "customer")),
            status=_field(obj, "status"),
            current_period_start=period_start,
            current_period_end=period_end,
            cancel_at_period_end=bool(_field(obj, "cancel_at_period_end", False)),
            metadata=metadata,
        )


class BillingEvent(BaseModel):
    """A signature-verified Stripe event reduced to what reconciliation reads."""
    id: Optional[str] = None
    type: str
    created: Optional[int] = None
    data_object: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "BillingEvent":
        data = payload.get("data") or {}
        return cls(
            id=payload.get("id"),
            type=payload.get("type", ""),
            created=payload.get("created"),
            data_object=data.get("object") or {},
        )

    @property
    def occurred_at(self) -> datetime:
        """Event time from the payload, so a replay produces the same row."""
        if self.created is not None:
            return _from_timestamp(self.created)
        return datetime.now(timezone.utc)

    @property
    def metadata(self) -> dict[str, Any]:
        return self.data_object.get("metadata") or {}

    @property
    def subscription_id(self) -> Optional[str]:
        """External subscription id this event refers to."""
        obj = self.data_object
        if self.type == BillingEventType.CHECKOUT_COMPLETED.value:
            return _as_id(obj.get("subscription"))
        if self.type.startswith("customer.subscription."):
            return obj.get("id")
        if self.type.startswith("invoice."):
            direct = _as_id(obj.get("subscription"))
            if direct:
                return direct
            details = (obj.get("parent") or {}).get("subscription_details") or {}
            return _as_id(details.get("subscription"))
        return None


# =============================================================================
# Reconciliation
# =============================================================================

def reconcile(
    current: Optional[Subscription],
    event: BillingEvent,
    provider_subscription: Optional[ProviderSubscription] = None,
    default_plan_name: str = DEFAULT_PAID_PLAN_NAME,
) -> Optional[Subscription]:
    """
    Compute the next Subscription row for a verified billing event.

    Args:
        current: Row matched by external subscription id (or user id on
            checkout), if any.
        event: The verified event.
        provider_subscription: Fresh provider snapshot, required for
            ``invoice.payment_succeeded``.
        default_plan_name: Plan recorded when checkout metadata omits it.

    Returns:
        The row to persist, or None when the event is ignored.

    Raises:
        WebhookProcessingError: checkout completed without ``user_id`` metadata.
    """
    occurred_at = event.occurred_at
    obj = event.data_object

    if event.type == BillingEventType.CHECKOUT_COMPLETED.value:
        user_id = event.metadata.get("user_id")
        if not user_id:
            raise WebhookProcessingError("Missing user_id in session metadata")

        return Subscription(
            id=current.id if current else None,
            user_id=user_id,
            stripe_customer_id=_as_id(obj.get("customer")),
            stripe_subscription_id=_as_id(obj.get("subscription")),
            plan_name=event.metadata.get("plan_name") or default_plan_name,
            status=SubscriptionStatus.ACTIVE,
            current_period_start=occurred_at,
            current_period_end=occurred_at + CHECKOUT_PERIOD,
            cancel_at_period_end=False,
            created_at=current.created_at if current and current.created_at else occurred_at,
            updated_at=occurred_at,
        )

    if current is None:
        return None

    if event.type == BillingEventType.SUBSCRIPTION_UPDATED.value:
        snapshot = ProviderSubscription.from_object(obj)
        if not snapshot.metadata.get("user_id"):
            return None
        return current.model_copy(update={
            "status": map_provider_status(snapshot.status),
            "current_period_start": _from_timestamp(snapshot.current_period_start) or current.current_period_start,
            "current_period_end": _from_timestamp(snapshot.current_period_end) or current.current_period_end,
            "cancel_at_period_end": snapshot.cancel_at_period_end,
            "updated_at": occurred_at,
        })

    if event.type == BillingEventType.SUBSCRIPTION_DELETED.value:
        if not event.metadata.get("user_id"):
            return None
        return current.model_copy(update={
            "status": SubscriptionStatus.CANCELLED,
            "updated_at": occurred_at,
        })

    if event.type == BillingEventType.INVOICE_PAYMENT_SUCCEEDED.value:
        if provider_subscription is None or not provider_subscription.metadata.get("user_id"):
            return None
        return current.model_copy(update={
            "status": SubscriptionStatus.ACTIVE,
            "current_period_start": _from_timestamp(provider_subscription.current_period_start) or current.current_period_start,
            "current_period_end": _from_timestamp(provider_subscription.current_period_end) or current.current_period_end,
            "updated_at": occurred_at,
        })

    if event.type == BillingEventType.INVOICE_PAYMENT_FAILED.value:
        return current.model_copy(update={
            "status": SubscriptionStatus.PAST_DUE,
            "updated_at": occurred_at,
        })

    return None


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateCheckoutRequest(BaseModel):
    """Request DTO for creating a checkout session."""
    price_id: str = Field(..., description="Stripe price to subscribe to")
    user_id: str
    user_email: str
    plan_name: str = DEFAULT_PAID_PLAN_NAME
    success_url: str = Field(..., description="Redirect URL after successful payment")
    cancel_url: str = Field(..., description="Redirect URL after cancelled payment")
    metadata: dict[str, str] = Field(default_factory=dict)


class CheckoutResponse(BaseModel):
    """Response DTO for checkout session creation."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., serialization_alias="sessionId")


class PortalSessionRequest(BaseModel):
    """Request DTO for creating a billing portal session."""
    user_id: str
    return_url: str = Field(..., description="URL to return to after portal session")


class PortalResponse(BaseModel):
    """Response DTO for portal session creation."""
    url: str
