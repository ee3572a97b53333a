"""
WhatsApp Webhook Routes

Cloud API verification handshake and inbound message delivery. Meta
expects plain-text answers on both.
"""

import json
import logging
from typing import Optional

import pydantic
from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse

from app.api.dependencies import SettingsDep, WhatsAppServiceDep
from app.domain.whatsapp import WhatsAppWebhookPayload


logger = logging.getLogger(__name__)

router = APIRouter()

BUSINESS_ACCOUNT_OBJECT = "whatsapp_business_account"


@router.get("/whatsapp-webhook")
async def verify_whatsapp_webhook(
    settings: SettingsDep,
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """Echo the challenge when Meta presents our verify token."""
    expected = settings.whatsapp_verify_token
    if mode == "subscribe" and expected and verify_token == expected:
        logger.info("WhatsApp webhook verified")
        return PlainTextResponse(challenge or "")

    logger.warning("WhatsApp webhook verification failed")
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("/whatsapp-webhook")
async def receive_whatsapp_webhook(request: Request, service: WhatsAppServiceDep):
    try:
        body = json.loads(await request.body())
    except ValueError:
        return PlainTextResponse("Bad Request", status_code=400)

    if not isinstance(body, dict) or body.get("object") != BUSINESS_ACCOUNT_OBJECT:
        return PlainTextResponse("Bad Request", status_code=400)

    try:
        payload = WhatsAppWebhookPayload.model_validate(body)
    except pydantic.ValidationError as e:
        logger.warning(f"Malformed WhatsApp delivery: {e}")
        return PlainTextResponse("Bad Request", status_code=400)

    try:
        handled = await service.handle_payload(payload)
    except Exception:
        logger.exception("Error processing WhatsApp webhook")
        return PlainTextResponse("Internal Server Error", status_code=500)

    logger.info(f"[WHATSAPP] Processed {handled} message(s)")
    return PlainTextResponse("OK")
