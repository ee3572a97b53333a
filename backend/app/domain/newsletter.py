"""Newsletter signup models."""

import re
from typing import Optional

from pydantic import BaseModel


NEWSLETTER_SOURCE = "website_footer"
ALREADY_SUBSCRIBED_CODE = "ALREADY_SUBSCRIBED"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(raw: str) -> str:
    return raw.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def client_ip(forwarded_for: Optional[str], real_ip: Optional[str]) -> Optional[str]:
    """First hop of X-Forwarded-For, then X-Real-IP."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return real_ip or None


class NewsletterRequest(BaseModel):
    email: Optional[str] = None


class NewsletterSubscription(BaseModel):
    id: Optional[str] = None
    email: str
    source: str = NEWSLETTER_SOURCE
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    class Config:
        from_attributes = True
