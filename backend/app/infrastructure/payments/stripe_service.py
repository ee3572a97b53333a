"""
Stripe Payment Service

Infrastructure service for Stripe: customer resolution, hosted checkout,
the billing portal, subscription lookups and webhook signature checks.
All calls go through the official SDK; failures surface as
BillingProviderError carrying Stripe's message.
"""

import json
import logging
from typing import Any, Optional

import stripe
from stripe import StripeError

from app.config.settings import Settings
from app.infrastructure.exceptions import (
    BillingProviderError,
    ConfigurationError,
    ValidationError,
)


logger = logging.getLogger(__name__)


def search_literal(value: str) -> str:
    """Quote ``value`` for a Stripe Search query clause."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class StripeService:
    """
    Stripe payment processing service.

    Customer resolution is idempotent: the same email (checkout) or
    user id (portal) always maps to the first customer Stripe returns.
    """

    def __init__(self, settings: Settings):
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._api_version = settings.stripe_api_version

    def _require_key(self) -> None:
        if not self._api_key:
            raise ConfigurationError("Missing STRIPE_SECRET_KEY", missing_keys=["STRIPE_SECRET_KEY"])
        stripe.api_key = self._api_key
        stripe.api_version = self._api_version

    @staticmethod
    def _provider_error(action: str, error: StripeError) -> BillingProviderError:
        message = getattr(error, "user_message", None) or str(error)
        logger.error(f"Stripe {action} failed: {message}")
        return BillingProviderError(
            message,
            provider="stripe",
            status=getattr(error, "http_status", None),
            original_error=error,
        )

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def find_or_create_customer(self, email: str, user_id: str) -> str:
        """
        Return the id of the customer registered under ``email``.

        A new customer (metadata ``user_id``) is created only when the
        search comes back empty.
        """
        self._require_key()
        try:
            existing = stripe.Customer.search(query=f"email:{search_literal(email)}", limit=1)
            if existing.data:
                customer_id = existing.data[0].id
                logger.info(f"Reusing Stripe customer {customer_id} for user {user_id}")
                return customer_id

            customer = stripe.Customer.create(
                email=email,
                metadata={"user_id": user_id},
            )
            logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
            return customer.id

        except StripeError as e:
            raise self._provider_error("customer lookup", e)

    async def find_customer_by_user_id(self, user_id: str) -> Optional[str]:
        """Customer whose metadata carries ``user_id``, or None."""
        self._require_key()
        try:
            result = stripe.Customer.search(query=f"metadata['user_id']:{search_literal(user_id)}", limit=1)
        except StripeError as e:
            raise self._provider_error("customer search", e)
        return result.data[0].id if result.data else None

    # =========================================================================
    # Checkout Session (subscription mode)
    # =========================================================================

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> str:
        """
        Create a hosted Checkout Session and return its id.

        ``metadata`` lands on the session and on the subscription it
        creates so later webhook events can be traced to the user.
        """
        self._require_key()
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price": price_id,
                        "quantity": 1,
                    }
                ],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                allow_promotion_codes=True,
                billing_address_collection="auto",
                automatic_tax={"enabled": True},
                customer_update={"address": "auto"},
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )
            logger.info(f"Created checkout session {session.id} for user {metadata.get('user_id')}")
            return session.id

        except StripeError as e:
            raise self._provider_error("checkout", e)

    # =========================================================================
    # Customer Portal
    # =========================================================================

    async def create_portal_session(self, customer_id: str, return_url: str) -> str:
        """Open a Billing Portal session and return its URL."""
        self._require_key()
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )
            logger.info(f"Created portal session for customer {customer_id}")
            return session.url

        except StripeError as e:
            raise self._provider_error("portal", e)

    # =========================================================================
    # Subscription Queries
    # =========================================================================

    async def get_subscription(self, subscription_id: str) -> Any:
        """Authoritative subscription object from Stripe."""
        self._require_key()
        try:
            return stripe.Subscription.retrieve(subscription_id)
        except StripeError as e:
            raise self._provider_error("subscription retrieve", e)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """
        Verify the ``Stripe-Signature`` header and decode the event.

        Returns:
            The event as a plain dict.

        Raises:
            ConfigurationError: no webhook secret configured
            ValidationError: header missing, signature invalid or body not JSON
        """
        if not self._webhook_secret:
            raise ConfigurationError(
                "Missing STRIPE_WEBHOOK_SECRET",
                missing_keys=["STRIPE_WEBHOOK_SECRET"],
            )
        if not signature:
            raise ValidationError("Missing stripe-signature header")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self._webhook_secret,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
            return json.loads(body)

        except stripe.SignatureVerificationError as e:
            raise ValidationError(f"Webhook signature verification failed: {e}", original_error=e)
        except (UnicodeDecodeError, ValueError) as e:
            raise ValidationError(f"Invalid payload: {e}", original_error=e)
