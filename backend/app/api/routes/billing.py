"""
Billing API Routes

Checkout and Billing Portal session creation. Both endpoints carry the
user id in the body and hand the client a Stripe-hosted page.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.dependencies import StripeServiceDep
from app.domain.subscription import (
    CheckoutResponse,
    CreateCheckoutRequest,
    PortalResponse,
    PortalSessionRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-checkout-session")
async def create_checkout_session(
    request: CreateCheckoutRequest,
    stripe_service: StripeServiceDep,
):
    """
    Create a subscription-mode Checkout Session.

    The customer is looked up by email and created on first use, so
    repeated checkouts for the same email share one customer.
    """
    customer_id = await stripe_service.find_or_create_customer(request.user_email, request.user_id)

    metadata = {
        "user_id": request.user_id,
        "plan_name": request.plan_name,
        **request.metadata,
    }
    session_id = await stripe_service.create_checkout_session(
        customer_id=customer_id,
        price_id=request.price_id,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
        metadata=metadata,
    )

    return CheckoutResponse(session_id=session_id).model_dump(by_alias=True)


@router.post("/create-portal-session", response_model=PortalResponse)
async def create_portal_session(
    request: PortalSessionRequest,
    stripe_service: StripeServiceDep,
):
    """Open the Billing Portal for the customer tagged with ``user_id``."""
    customer_id = await stripe_service.find_customer_by_user_id(request.user_id)
    if customer_id is None:
        logger.warning(f"No billing customer for user {request.user_id}")
        return JSONResponse(status_code=500, content={"error": "Customer not found"})

    url = await stripe_service.create_portal_session(customer_id, request.return_url)
    return PortalResponse(url=url)
