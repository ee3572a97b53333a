"""
Integration API Routes

Messaging channels a user links to their account. A linked WhatsApp
number is how inbound WhatsApp expenses find their owner.
"""

import logging

from fastapi import APIRouter

from app.api.dependencies import CredentialCipherDep, CurrentUserId, IntegrationRepoDep
from app.domain.integration import CreateIntegrationRequest, IntegrationType, normalize_phone_number


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/integrations")
async def list_integrations(user_id: CurrentUserId, repo: IntegrationRepoDep):
    """The caller's integrations. Credentials are never returned."""
    integrations = await repo.get_integrations(user_id)
    return {"integrations": [i.model_dump(mode="json") for i in integrations]}


@router.post("/integrations", status_code=201)
async def create_integration(
    request: CreateIntegrationRequest,
    user_id: CurrentUserId,
    repo: IntegrationRepoDep,
    cipher: CredentialCipherDep,
):
    address = request.external_address
    if request.type == IntegrationType.WHATSAPP:
        address = normalize_phone_number(address)

    encrypted = cipher.encrypt(request.credential) if request.credential else None

    integration = await repo.create(
        user_id=user_id,
        type=request.type,
        name=request.name,
        external_address=address,
        credential_encrypted=encrypted,
        config=request.config,
        enabled=request.enabled,
    )
    logger.info(f"Linked {request.type.value} integration {integration.id} for user {user_id}")
    return {"integration": integration.model_dump(mode="json")}
