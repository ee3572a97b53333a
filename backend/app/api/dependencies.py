"""
API Dependencies

FastAPI dependency injection for authentication, settings and the
services each router needs. Tests replace any provider here through
``app.dependency_overrides``.

Security: Supabase JWTs are verified with the project JWKS (ES256) and
fall back to the HS256 JWT secret. Tokens are never decoded unverified.
"""

import logging
from typing import Annotated, Optional

import jwt
from jwt import PyJWKClient
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config.settings import Settings, get_settings
from app.infrastructure.ai.openai_service import OpenAIService
from app.infrastructure.db.dependencies import (
    AccountDataRepoDep,
    ConversationRepoDep,
    ExpenseRepoDep,
    IntegrationRepoDep,
    KnowledgeBaseRepoDep,
    NewsletterRepoDep,
    NotificationRepoDep,
    SessionDep,
    SubscriptionRepoDep,
    UsageRepoDep,
)
from app.infrastructure.exceptions import AuthenticationError
from app.infrastructure.messaging.whatsapp_client import WhatsAppClient
from app.infrastructure.notifications.channels import default_channels
from app.infrastructure.payments.stripe_service import StripeService
from app.infrastructure.receipts.extractors import ReceiptExtractor, build_receipt_extractor
from app.infrastructure.security.credentials import CredentialCipher
from app.infrastructure.services.account_deletion_service import AccountDeletionService
from app.infrastructure.services.chat_service import ChatService
from app.infrastructure.services.expense_service import ExpenseService
from app.infrastructure.services.notification_service import NotificationService
from app.infrastructure.services.receipt_service import ReceiptService
from app.infrastructure.services.usage_service import UsageService
from app.infrastructure.services.whatsapp_service import WhatsAppService
from app.infrastructure.supabase_admin.admin_service import SupabaseAdminService
from app.infrastructure.voice.retell_service import RetellService


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SettingsDep = Annotated[Settings, Depends(get_settings)]

# PyJWKClient caches keys internally and refreshes them periodically.
_jwks_client: Optional[PyJWKClient] = None


def _get_jwks_client(settings: Settings) -> PyJWKClient:
    global _jwks_client
    if _jwks_client is None:
        jwks_url = f"{settings.supabase_url}/auth/v1/.well-known/jwks.json"
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
    return _jwks_client


def _decode(token: str, key, algorithm: str, issuer: str) -> dict:
    return jwt.decode(
        token,
        key,
        algorithms=[algorithm],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


def verify_supabase_token(token: str, settings: Settings) -> str:
    """
    Verify a Supabase access token and return its ``sub`` claim.

    Verification strategy (in order):
      1. JWKS (ES256), which follows key rotation automatically.
      2. HS256 with ``SUPABASE_JWT_SECRET`` for legacy projects.

    Raises:
        AuthenticationError: token expired, invalid or without a subject.
    """
    issuer = f"{settings.supabase_url}/auth/v1"
    payload: Optional[dict] = None

    try:
        signing_key = _get_jwks_client(settings).get_signing_key_from_jwt(token)
        payload = _decode(token, signing_key.key, "ES256", issuer)
    except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as jwks_err:
        logger.debug("JWKS verification failed, trying HS256 fallback: %s", jwks_err)

    if payload is None and settings.supabase_jwt_secret:
        try:
            payload = _decode(token, settings.supabase_jwt_secret, "HS256", issuer)
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning("HS256 JWT verification also failed: %s", e)

    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token: missing user ID")
    return user_id


async def get_current_user_id(
    settings: SettingsDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Authenticated user id from the ``Authorization: Bearer`` header."""
    if not credentials:
        raise AuthenticationError("No authorization header")
    return verify_supabase_token(credentials.credentials, settings)


CurrentUserId = Annotated[str, Depends(get_current_user_id)]


# =============================================================================
# Provider clients
# =============================================================================

def get_stripe_service(settings: SettingsDep) -> StripeService:
    return StripeService(settings)


def get_openai_service(settings: SettingsDep) -> OpenAIService:
    return OpenAIService(settings)


def get_retell_service(settings: SettingsDep) -> RetellService:
    return RetellService(settings)


def get_whatsapp_client(settings: SettingsDep) -> WhatsAppClient:
    return WhatsAppClient(settings)


def get_supabase_admin(settings: SettingsDep) -> SupabaseAdminService:
    return SupabaseAdminService(settings)


def get_receipt_extractor(settings: SettingsDep) -> ReceiptExtractor:
    return build_receipt_extractor(settings)


def get_credential_cipher(settings: SettingsDep) -> CredentialCipher:
    return CredentialCipher(settings)


StripeServiceDep = Annotated[StripeService, Depends(get_stripe_service)]
OpenAIServiceDep = Annotated[OpenAIService, Depends(get_openai_service)]
RetellServiceDep = Annotated[RetellService, Depends(get_retell_service)]
SupabaseAdminDep = Annotated[SupabaseAdminService, Depends(get_supabase_admin)]
CredentialCipherDep = Annotated[CredentialCipher, Depends(get_credential_cipher)]


# =============================================================================
# Application services
# =============================================================================

def get_usage_service(
    usage_repo: UsageRepoDep,
    subscription_repo: SubscriptionRepoDep,
    settings: SettingsDep,
) -> UsageService:
    return UsageService(usage_repo, subscription_repo, settings)


def get_expense_service(expense_repo: ExpenseRepoDep) -> ExpenseService:
    return ExpenseService(expense_repo)


def get_chat_service(
    conversation_repo: ConversationRepoDep,
    knowledge_base_repo: KnowledgeBaseRepoDep,
    openai_service: OpenAIServiceDep,
    settings: SettingsDep,
) -> ChatService:
    return ChatService(conversation_repo, knowledge_base_repo, openai_service, settings)


def get_notification_service(
    repo: NotificationRepoDep,
    admin: SupabaseAdminDep,
) -> NotificationService:
    return NotificationService(repo, default_channels(admin))


def get_whatsapp_service(
    integration_repo: IntegrationRepoDep,
    expense_repo: ExpenseRepoDep,
    client: Annotated[WhatsAppClient, Depends(get_whatsapp_client)],
) -> WhatsAppService:
    return WhatsAppService(integration_repo, expense_repo, client)


def get_account_deletion_service(
    account_repo: AccountDataRepoDep,
    admin: SupabaseAdminDep,
) -> AccountDeletionService:
    return AccountDeletionService(account_repo, admin)


def get_receipt_service(
    extractor: Annotated[ReceiptExtractor, Depends(get_receipt_extractor)],
    admin: SupabaseAdminDep,
    settings: SettingsDep,
) -> ReceiptService:
    return ReceiptService(extractor, admin, settings)


UsageServiceDep = Annotated[UsageService, Depends(get_usage_service)]
ExpenseServiceDep = Annotated[ExpenseService, Depends(get_expense_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
WhatsAppServiceDep = Annotated[WhatsAppService, Depends(get_whatsapp_service)]
AccountDeletionServiceDep = Annotated[AccountDeletionService, Depends(get_account_deletion_service)]
ReceiptServiceDep = Annotated[ReceiptService, Depends(get_receipt_service)]


# Re-export DB dependencies so routers have a single import source.
__all__ = [
    "SessionDep",
    "SettingsDep",
    "CurrentUserId",
    "SubscriptionRepoDep",
    "KnowledgeBaseRepoDep",
    "IntegrationRepoDep",
    "NewsletterRepoDep",
]
