"""
Stripe Webhook Handler

Keeps ``user_subscriptions`` in step with Stripe. The signature is
checked before anything else; an unverified body never reaches the
database.

Handled events:
- checkout.session.completed: create or overwrite the user's paid row
- customer.subscription.updated: sync status, period and cancel flag
- customer.subscription.deleted: mark cancelled (row kept)
- invoice.payment_succeeded: refetch from Stripe, mark active
- invoice.payment_failed: mark past_due

Every row written is computed by ``reconcile`` from the event alone
(plus the refetched subscription for invoices), so Stripe retries and
replays converge on the same state.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from app.api.dependencies import SettingsDep, StripeServiceDep, SubscriptionRepoDep
from app.config.settings import Settings
from app.domain.subscription import (
    BillingEvent,
    BillingEventType,
    ProviderSubscription,
    Subscription,
    reconcile,
)
from app.infrastructure.db.repositories.subscription_repository import SubscriptionRepository
from app.infrastructure.exceptions import AssistantError, ValidationError
from app.infrastructure.payments.stripe_service import StripeService


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Webhook Endpoint
# =============================================================================

@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_service: StripeServiceDep,
    repo: SubscriptionRepoDep,
    settings: SettingsDep,
):
    """
    Verify and apply one Stripe event.

    Returns ``{"received": true}`` once the event is applied or ignored.
    Stripe retries anything that is not a 2xx.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        raw_event = stripe_service.verify_webhook_signature(payload, signature)
    except ValidationError as e:
        logger.error(f"Webhook signature verification failed: {e.message}")
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)

    event = BillingEvent.from_payload(raw_event)
    logger.info(f"Processing webhook event: {event.type} ({event.id})")

    try:
        await dispatch_event(event, repo, stripe_service, settings)
    except AssistantError as e:
        logger.error(f"Error processing webhook {event.type}: {e.message}")
        return JSONResponse(status_code=500, content={"error": e.message})
    except Exception as e:
        logger.exception(f"Unexpected error processing webhook {event.type}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    return {"received": True}


async def dispatch_event(
    event: BillingEvent,
    repo: SubscriptionRepository,
    stripe_service: StripeService,
    settings: Settings,
) -> Optional[Subscription]:
    """Route an event to its handler; unknown types are ignored."""
    handlers = {
        BillingEventType.CHECKOUT_COMPLETED.value: handle_checkout_completed,
        BillingEventType.SUBSCRIPTION_UPDATED.value: handle_subscription_change,
        BillingEventType.SUBSCRIPTION_DELETED.value: handle_subscription_change,
        BillingEventType.INVOICE_PAYMENT_SUCCEEDED.value: handle_invoice_payment_succeeded,
        BillingEventType.INVOICE_PAYMENT_FAILED.value: handle_subscription_change,
    }
    handler = handlers.get(event.type)
    if handler is None:
        logger.info(f"Unhandled event type: {event.type}")
        return None
    return await handler(event, repo, stripe_service, settings)


# =============================================================================
# Event Handlers
# =============================================================================

async def _persist(event: BillingEvent, repo: SubscriptionRepository, row: Optional[Subscription]) -> Optional[Subscription]:
    if row is None:
        logger.info(f"Skipped {event.type} for subscription {event.subscription_id}: no matching row or user_id")
        return None
    saved = await repo.upsert(row)
    logger.info(f"Applied {event.type} to user {saved.user_id} -> {saved.status.value}")
    return saved


async def handle_checkout_completed(
    event: BillingEvent,
    repo: SubscriptionRepository,
    stripe_service: StripeService,
    settings: Settings,
) -> Optional[Subscription]:
    """Activate the plan bought in a completed Checkout Session."""
    current = None
    if event.subscription_id:
        current = await repo.get_by_stripe_subscription_id(event.subscription_id)

    user_id = event.metadata.get("user_id")
    if current is None and user_id:
        current = await repo.get_by_user_id(user_id)

    row = reconcile(current, event, default_plan_name=settings.stripe_default_plan_name)
    return await _persist(event, repo, row)


async def handle_subscription_change(
    event: BillingEvent,
    repo: SubscriptionRepository,
    stripe_service: StripeService,
    settings: Settings,
) -> Optional[Subscription]:
    """Updated, deleted and payment-failed events all edit the matched row in place."""
    if not event.subscription_id:
        logger.info(f"{event.type} without a subscription id, skipping")
        return None

    current = await repo.get_by_stripe_subscription_id(event.subscription_id)
    return await _persist(event, repo, reconcile(current, event))


async def handle_invoice_payment_succeeded(
    event: BillingEvent,
    repo: SubscriptionRepository,
    stripe_service: StripeService,
    settings: Settings,
) -> Optional[Subscription]:
    """Renewal: period bounds come from Stripe's current view of the subscription."""
    if not event.subscription_id:
        logger.info(f"Invoice {event.data_object.get('id')} is not tied to a subscription, skipping")
        return None

    current = await repo.get_by_stripe_subscription_id(event.subscription_id)
    if current is None:
        return await _persist(event, repo, None)

    snapshot = ProviderSubscription.from_object(
        await stripe_service.get_subscription(event.subscription_id)
    )
    return await _persist(event, repo, reconcile(current, event, snapshot))
