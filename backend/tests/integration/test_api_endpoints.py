"""
Integration tests for the API endpoints.

Tests the full request/response cycle with providers and repositories
replaced through ``app.dependency_overrides``.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from app.api import dependencies
from app.config.settings import get_settings
from app.domain.integration import Integration, IntegrationType
from app.domain.usage import UsageCounter, period_index
from app.infrastructure.ai.openai_service import OpenAIService
from app.infrastructure.db import dependencies as repositories
from app.infrastructure.exceptions import DuplicateError, NotFoundError, ReceiptExtractionError
from app.infrastructure.security.credentials import CredentialCipher
from app.infrastructure.services.account_deletion_service import AccountDeletionService
from app.infrastructure.services.expense_service import ExpenseService
from app.infrastructure.services.receipt_service import ReceiptService
from app.infrastructure.services.usage_service import UsageService
from app.infrastructure.voice.retell_service import RetellService

from conftest import TEST_USER_ID, build_settings


@pytest.fixture(autouse=True)
def test_settings(app):
    app.dependency_overrides[get_settings] = lambda: build_settings()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert "message" in response.json()

    def test_health_endpoint(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "ai-business-assistant"}


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


@pytest.fixture
def stripe_service(app):
    service = MagicMock()
    service.find_or_create_customer = AsyncMock(return_value="cus_1")
    service.create_checkout_session = AsyncMock(return_value="cs_test_1")
    service.find_customer_by_user_id = AsyncMock(return_value="cus_1")
    service.create_portal_session = AsyncMock(return_value="https://billing.stripe.com/p/session_1")
    app.dependency_overrides[dependencies.get_stripe_service] = lambda: service
    return service


CHECKOUT_BODY = {
    "price_id": "price_pro",
    "user_id": TEST_USER_ID,
    "user_email": "owner@example.com",
    "success_url": "https://app.example.com/billing?success=1",
    "cancel_url": "https://app.example.com/billing",
}


class TestBillingEndpoints:

    def test_checkout_returns_session_id(self, client, stripe_service):
        response = client.post("/api/create-checkout-session", json={**CHECKOUT_BODY, "metadata": {"ref": "footer"}})

        assert response.status_code == 200
        assert response.json() == {"sessionId": "cs_test_1"}

        metadata = stripe_service.create_checkout_session.await_args.kwargs["metadata"]
        assert metadata == {"user_id": TEST_USER_ID, "plan_name": "Business Pro", "ref": "footer"}
        stripe_service.find_or_create_customer.assert_awaited_once_with("owner@example.com", TEST_USER_ID)

    def test_checkout_requires_price(self, client, stripe_service):
        body = {k: v for k, v in CHECKOUT_BODY.items() if k != "price_id"}
        assert client.post("/api/create-checkout-session", json=body).status_code == 422

    def test_portal_returns_url(self, client, stripe_service):
        response = client.post("/api/create-portal-session", json={
            "user_id": TEST_USER_ID, "return_url": "https://app.example.com/billing",
        })

        assert response.status_code == 200
        assert response.json() == {"url": "https://billing.stripe.com/p/session_1"}

    def test_portal_without_customer(self, client, stripe_service):
        stripe_service.find_customer_by_user_id.return_value = None

        response = client.post("/api/create-portal-session", json={
            "user_id": TEST_USER_ID, "return_url": "https://app.example.com/billing",
        })

        assert response.status_code == 500
        assert response.json() == {"error": "Customer not found"}
        stripe_service.create_portal_session.assert_not_called()

    def test_missing_stripe_key(self, client):
        response = client.post("/api/create-checkout-session", json=CHECKOUT_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "Missing STRIPE_SECRET_KEY"


# ---------------------------------------------------------------------------
# Voice and AI
# ---------------------------------------------------------------------------


class TestVoiceEndpoint:

    def test_missing_key_is_plain_text(self, client):
        response = client.post("/api/create-web-call", json={"agent_id": "agent_1"})

        assert response.status_code == 500
        assert response.text == "Missing RETELL_API_KEY"

    def test_agent_id_required(self, client):
        assert client.post("/api/create-web-call", json={}).status_code == 422

    def test_returns_provider_response(self, app, client):
        retell = MagicMock(spec=RetellService)
        retell.create_web_call = AsyncMock(return_value={"call_id": "call_1", "access_token": "tok"})
        app.dependency_overrides[dependencies.get_retell_service] = lambda: retell

        response = client.post("/api/create-web-call", json={"agent_id": "agent_1", "customer_name": "Joe"})

        assert response.status_code == 200
        assert response.json() == {"call_id": "call_1", "access_token": "tok"}


class TestAIEndpoints:

    def test_chat_reply(self, app, client):
        chat = MagicMock()
        chat.reply = AsyncMock(return_value="Hello there")
        app.dependency_overrides[dependencies.get_chat_service] = lambda: chat

        response = client.post("/api/ai-chat", json={"message": "Hi", "userId": TEST_USER_ID})

        assert response.status_code == 200
        assert response.json() == {"message": "Hello there", "success": True}
        assert chat.reply.await_args.kwargs["user_id"] == TEST_USER_ID

    def test_chat_foreign_conversation(self, app, client):
        chat = MagicMock()
        chat.reply = AsyncMock(side_effect=NotFoundError("Conversation not found", operation="read", table="conversations"))
        app.dependency_overrides[dependencies.get_chat_service] = lambda: chat

        response = client.post("/api/ai-chat", json={"message": "Hi", "conversationId": "conv-9", "userId": TEST_USER_ID})

        assert response.status_code == 404
        assert response.json()["error"] == "Conversation not found"

    def test_empty_message_rejected(self, app, client):
        app.dependency_overrides[dependencies.get_chat_service] = lambda: MagicMock()
        assert client.post("/api/ai-chat", json={"message": ""}).status_code == 422

    def test_categorizer_failure_defaults_to_other(self, app, client):
        app.dependency_overrides[dependencies.get_openai_service] = lambda: OpenAIService(build_settings())

        response = client.post("/api/ai-document-categorizer", json={
            "fileName": "contract.pdf", "fileType": "application/pdf", "fileSize": 1024,
        })

        assert response.status_code == 500
        assert response.json() == {"error": "OpenAI API key not configured", "category": "other"}


# ---------------------------------------------------------------------------
# Usage
# ---------------------------------------------------------------------------


@pytest.fixture
def usage_service(app, mock_usage_repo, mock_subscription_repo):
    service = UsageService(mock_usage_repo, mock_subscription_repo, build_settings())
    app.dependency_overrides[dependencies.get_usage_service] = lambda: service
    return service


class TestUsageEndpoints:

    def test_requires_bearer_token(self, client, usage_service):
        response = client.post("/api/check-receipt-limit")

        assert response.status_code == 401
        assert response.json() == {"error": "No authorization header"}

    def test_limit_reached_is_403(self, client, authenticated, usage_service, mock_usage_repo):
        now = datetime.now(timezone.utc)
        mock_usage_repo.increment.return_value = None
        mock_usage_repo.get.return_value = UsageCounter(
            user_id=TEST_USER_ID, period_index=period_index(now), receipt_uploads=5,
        )

        response = client.post("/api/check-receipt-limit")

        assert response.status_code == 403
        body = response.json()
        assert body["current_count"] == 5
        assert body["monthly_limit"] == 5
        assert body["limit_reached"] is True
        assert "limit" in body["error"]

    def test_increment_below_limit(self, client, authenticated, usage_service, mock_usage_repo):
        now = datetime.now(timezone.utc)
        mock_usage_repo.increment.return_value = UsageCounter(
            user_id=TEST_USER_ID, period_index=period_index(now), receipt_uploads=3,
        )

        response = client.post("/api/check-receipt-limit")

        assert response.status_code == 200
        assert response.json() == {"success": True, "can_add_receipt": True, "current_count": 3, "limit_reached": False}

    def test_status_lookup_failure_allows_upload(self, client, authenticated, usage_service, mock_usage_repo):
        mock_usage_repo.get.side_effect = SQLAlchemyError("connection refused")

        response = client.get("/api/check-receipt-limit")

        assert response.status_code == 200
        body = response.json()
        assert body["can_add_receipt"] is True
        assert body["current_count"] == 0
        assert body["plan"] == "Free"


# ---------------------------------------------------------------------------
# Expenses and receipts
# ---------------------------------------------------------------------------


class TestExpenseEndpoints:

    @pytest.fixture(autouse=True)
    def expense_service(self, app, mock_expense_repo):
        app.dependency_overrides[dependencies.get_expense_service] = lambda: ExpenseService(mock_expense_repo)

    def test_create_expense(self, client, authenticated):
        response = client.post("/api/create-expense", json={
            "title": "Taxi to client", "amount": 23.4, "category": "Travel", "date": "2026-01-15",
        })

        assert response.status_code == 200
        expense = response.json()["expense"]
        assert expense["id"] == "exp-1"
        assert expense["user_id"] == TEST_USER_ID
        assert expense["category"] == "travel"
        assert expense["date"] == "2026-01-15"

    def test_create_expense_missing_fields(self, client, authenticated):
        response = client.post("/api/create-expense", json={"category": "travel"})

        assert response.status_code == 400
        assert response.json()["missing"] == ["title", "amount"]

    def test_update_foreign_expense(self, client, authenticated, mock_expense_repo):
        mock_expense_repo.update.return_value = None

        response = client.post("/api/update-expense", json={"expenseId": "exp-9", "title": "Taxi", "amount": 10})

        assert response.status_code == 404


class TestReceiptEndpoint:

    def test_extraction_failure(self, app, client, mock_admin):
        extractor = MagicMock()
        extractor.extract = AsyncMock(side_effect=ReceiptExtractionError("Receipt extraction failed: timeout"))
        service = ReceiptService(extractor, mock_admin, build_settings())
        app.dependency_overrides[dependencies.get_receipt_service] = lambda: service

        response = client.post("/api/process-receipt", json={"userId": TEST_USER_ID, "imageBase64": "aGVsbG8="})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to process receipt",
            "details": "Receipt extraction failed: timeout",
        }

    def test_missing_image(self, app, client, mock_admin):
        service = ReceiptService(MagicMock(), mock_admin, build_settings())
        app.dependency_overrides[dependencies.get_receipt_service] = lambda: service

        response = client.post("/api/process-receipt", json={"userId": TEST_USER_ID})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}


# ---------------------------------------------------------------------------
# Account deletion
# ---------------------------------------------------------------------------


class TestDeleteAccount:

    @pytest.fixture
    def account_repo(self):
        repo = MagicMock()
        repo.delete_user_rows = AsyncMock(return_value=0)
        repo.delete_auth_user = AsyncMock(return_value=False)
        repo.commit = AsyncMock()
        return repo

    def test_success(self, app, client, authenticated, account_repo, mock_admin):
        service = AccountDeletionService(account_repo, mock_admin)
        app.dependency_overrides[dependencies.get_account_deletion_service] = lambda: service

        response = client.post("/api/delete-account")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["method"] == "admin_api"
        mock_admin.delete_user.assert_awaited_once_with(TEST_USER_ID)

    def test_identity_survives(self, app, client, authenticated, account_repo, mock_admin):
        mock_admin.delete_user.side_effect = RuntimeError("forbidden")
        mock_admin.rpc.side_effect = RuntimeError("function does not exist")
        service = AccountDeletionService(account_repo, mock_admin)
        app.dependency_overrides[dependencies.get_account_deletion_service] = lambda: service

        response = client.post("/api/delete-account")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Failed to delete auth user - user can still log in"

    def test_requires_auth(self, client):
        assert client.post("/api/delete-account").status_code == 401


# ---------------------------------------------------------------------------
# WhatsApp
# ---------------------------------------------------------------------------


class TestWhatsAppWebhook:

    @pytest.fixture
    def whatsapp_service(self, app):
        service = MagicMock()
        service.handle_payload = AsyncMock(return_value=1)
        app.dependency_overrides[dependencies.get_whatsapp_service] = lambda: service
        return service

    def test_verification_echoes_challenge(self, client):
        response = client.get("/api/whatsapp-webhook", params={
            "hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "1158201444",
        })

        assert response.status_code == 200
        assert response.text == "1158201444"

    def test_verification_wrong_token(self, client):
        response = client.get("/api/whatsapp-webhook", params={
            "hub.mode": "subscribe", "hub.verify_token": "guess", "hub.challenge": "1",
        })

        assert response.status_code == 403
        assert response.text == "Forbidden"

    def test_wrong_object_is_bad_request(self, client, whatsapp_service):
        response = client.post("/api/whatsapp-webhook", json={"object": "page", "entry": []})

        assert response.status_code == 400
        whatsapp_service.handle_payload.assert_not_called()

    def test_invalid_json_is_bad_request(self, client, whatsapp_service):
        response = client.post("/api/whatsapp-webhook", content=b"{not json", headers={"content-type": "application/json"})
        assert response.status_code == 400

    def test_delivery_is_acknowledged(self, client, whatsapp_service):
        response = client.post("/api/whatsapp-webhook", json={"object": "whatsapp_business_account", "entry": []})

        assert response.status_code == 200
        assert response.text == "OK"
        whatsapp_service.handle_payload.assert_awaited_once()

    def test_processing_error(self, client, whatsapp_service):
        whatsapp_service.handle_payload.side_effect = RuntimeError("db down")

        response = client.post("/api/whatsapp-webhook", json={"object": "whatsapp_business_account", "entry": []})

        assert response.status_code == 500
        assert response.text == "Internal Server Error"


# ---------------------------------------------------------------------------
# Notifications, newsletter, integrations, knowledge base
# ---------------------------------------------------------------------------


class TestNotificationEndpoint:

    def test_missing_preferences_is_reported_in_body(self, app, client):
        service = MagicMock()
        service.send = AsyncMock(return_value={"success": False, "error": "User preferences not found"})
        app.dependency_overrides[dependencies.get_notification_service] = lambda: service

        response = client.post("/api/send-notification", json={
            "user_id": TEST_USER_ID,
            "notification_type": "expense_alert",
            "title": "Heads up",
            "message": "Big spend",
            "delivery_channel": "push",
        })

        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "User preferences not found"}

    def test_unknown_channel_rejected(self, app, client):
        app.dependency_overrides[dependencies.get_notification_service] = lambda: MagicMock()

        response = client.post("/api/send-notification", json={
            "user_id": TEST_USER_ID,
            "notification_type": "expense_alert",
            "title": "Heads up",
            "message": "Big spend",
            "delivery_channel": "pigeon",
        })

        assert response.status_code == 422


class TestNewsletter:

    @pytest.fixture
    def newsletter_repo(self, app):
        repo = MagicMock()
        repo.subscribe = AsyncMock(side_effect=lambda s: s.model_copy(update={"id": "nl-1"}))
        app.dependency_overrides[repositories.get_newsletter_repository] = lambda: repo
        return repo

    def test_subscribe(self, client, newsletter_repo):
        response = client.post(
            "/api/newsletter-subscribe",
            json={"email": "  Owner@Example.com "},
            headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1", "user-agent": "pytest"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "owner@example.com"
        assert data["ip_address"] == "203.0.113.7"
        assert data["source"] == "website_footer"

    def test_duplicate(self, client, newsletter_repo):
        newsletter_repo.subscribe.side_effect = DuplicateError("duplicate key", table="newsletter_subscriptions")

        response = client.post("/api/newsletter-subscribe", json={"email": "owner@example.com"})

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_SUBSCRIBED"

    @pytest.mark.parametrize("body, error", [
        ({}, "Email is required"),
        ({"email": "not-an-email"}, "Invalid email format"),
    ])
    def test_invalid(self, client, newsletter_repo, body, error):
        response = client.post("/api/newsletter-subscribe", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": error}
        newsletter_repo.subscribe.assert_not_called()


class TestIntegrations:

    def test_create_whatsapp_integration(self, app, client, authenticated):
        repo = MagicMock()
        repo.create = AsyncMock(side_effect=lambda **kwargs: Integration(
            id="int-1",
            user_id=kwargs["user_id"],
            type=kwargs["type"],
            name=kwargs["name"],
            external_address=kwargs["external_address"],
        ))
        cipher = CredentialCipher(build_settings())
        app.dependency_overrides[repositories.get_integration_repository] = lambda: repo
        app.dependency_overrides[dependencies.get_credential_cipher] = lambda: cipher

        response = client.post("/api/integrations", json={
            "type": "whatsapp",
            "name": "Shop phone",
            "external_address": "+1 (555) 010-2000",
            "credential": "graph-token",
        })

        assert response.status_code == 201
        assert response.json()["integration"]["external_address"] == "15550102000"
        kwargs = repo.create.await_args.kwargs
        assert kwargs["type"] == IntegrationType.WHATSAPP
        assert cipher.decrypt(kwargs["credential_encrypted"]) == "graph-token"
        assert "credential" not in response.json()["integration"]


class TestKnowledgeBase:

    def test_missing_fields(self, app, client):
        app.dependency_overrides[repositories.get_knowledge_base_repository] = lambda: MagicMock()

        response = client.post("/api/create-knowledge-base-entry", json={"userId": TEST_USER_ID, "title": "Shop"})

        assert response.status_code == 400
        assert response.json()["missing"] == ["content"]

    def test_update_missing_entry(self, app, client):
        repo = MagicMock()
        repo.update = AsyncMock(return_value=None)
        app.dependency_overrides[repositories.get_knowledge_base_repository] = lambda: repo

        response = client.post("/api/update-knowledge-base-entry", json={
            "entryId": "kb-9", "userId": TEST_USER_ID, "title": "Shop", "content": "Locals",
        })

        assert response.status_code == 404
