"""
Newsletter API Routes
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import NewsletterRepoDep
from app.domain.newsletter import (
    ALREADY_SUBSCRIBED_CODE,
    NewsletterRequest,
    NewsletterSubscription,
    client_ip,
    is_valid_email,
    normalize_email,
)
from app.infrastructure.exceptions import DuplicateError, ValidationError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/newsletter-subscribe")
async def newsletter_subscribe(
    body: NewsletterRequest,
    request: Request,
    repo: NewsletterRepoDep,
):
    if not body.email:
        raise ValidationError("Email is required")

    email = normalize_email(body.email)
    if not is_valid_email(email):
        raise ValidationError("Invalid email format")

    signup = NewsletterSubscription(
        email=email,
        user_agent=request.headers.get("user-agent") or "Unknown",
        ip_address=client_ip(
            request.headers.get("x-forwarded-for"),
            request.headers.get("x-real-ip"),
        ) or "Unknown",
    )

    try:
        saved = await repo.subscribe(signup)
    except DuplicateError:
        logger.info("Newsletter signup for an already subscribed address")
        return JSONResponse(
            status_code=409,
            content={
                "error": "This email is already subscribed to our newsletter",
                "code": ALREADY_SUBSCRIBED_CODE,
            },
        )

    return {
        "success": True,
        "message": "Successfully subscribed to newsletter!",
        "data": saved.model_dump(),
    }
