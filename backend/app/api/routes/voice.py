"""
Voice Call API Routes

Brokers the Retell web-call handshake. The browser gets back an access
token and connects to Retell directly; audio never passes through here.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from app.api.dependencies import RetellServiceDep
from app.domain.voice import WebCallRequest
from app.infrastructure.exceptions import AssistantError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-web-call")
async def create_web_call(request: WebCallRequest, retell: RetellServiceDep):
    """Return Retell's ``{call_id, access_token, ...}`` as-is; errors are plain text."""
    try:
        return await retell.create_web_call(
            agent_id=request.agent_id,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            metadata=request.metadata,
        )
    except AssistantError as e:
        return PlainTextResponse(e.message, status_code=500)
