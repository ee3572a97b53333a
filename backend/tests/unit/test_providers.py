"""
Unit tests for the provider wrappers: Stripe, OpenAI, Retell, receipt
extraction, credential encryption and account deletion.

No network: the SDKs are patched and HTTP clients get an
httpx.MockTransport.
"""

import hashlib
import hmac
import json
import random
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.domain.account import USER_DATA_TABLES, USER_STORAGE_BUCKETS, CleanupStatus, DeletionMethod
from app.domain.chat import DocumentCategory
from app.domain.expense import ExtractionConfidence
from app.infrastructure.ai.openai_service import OpenAIService
from app.infrastructure.exceptions import (
    ConfigurationError,
    DatabaseError,
    ReceiptExtractionError,
    ValidationError,
    VoiceProviderError,
)
from app.infrastructure.payments.stripe_service import StripeService, search_literal
from app.infrastructure.receipts.extractors import (
    HttpReceiptExtractor,
    MockReceiptExtractor,
    build_receipt_extractor,
)
from app.infrastructure.security.credentials import CredentialCipher
from app.infrastructure.services.account_deletion_service import AccountDeletionService
from app.infrastructure.services.receipt_service import ReceiptService, decode_image
from app.infrastructure.voice.retell_service import RetellService

from conftest import TEST_USER_ID, build_settings


def stripe_signature(payload: str, secret: str = "whsec_test_secret", timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signed}"


# ---------------------------------------------------------------------------
# Stripe
# ---------------------------------------------------------------------------


class TestStripeService:

    @pytest.mark.asyncio
    async def test_reuses_existing_customer(self):
        service = StripeService(build_settings(stripe_secret_key="sk_test_123"))

        with patch("stripe.Customer.search", return_value=SimpleNamespace(data=[SimpleNamespace(id="cus_old")])), \
             patch("stripe.Customer.create") as create:
            customer_id = await service.find_or_create_customer("owner@example.com", TEST_USER_ID)

        assert customer_id == "cus_old"
        create.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_customer_when_none_found(self):
        service = StripeService(build_settings(stripe_secret_key="sk_test_123"))

        with patch("stripe.Customer.search", return_value=SimpleNamespace(data=[])), \
             patch("stripe.Customer.create", return_value=SimpleNamespace(id="cus_new")) as create:
            customer_id = await service.find_or_create_customer("owner@example.com", TEST_USER_ID)

        assert customer_id == "cus_new"
        assert create.call_args.kwargs["metadata"] == {"user_id": TEST_USER_ID}

    @pytest.mark.asyncio
    async def test_apostrophe_in_email_is_escaped(self):
        service = StripeService(build_settings(stripe_secret_key="sk_test_123"))

        with patch("stripe.Customer.search", return_value=SimpleNamespace(data=[])) as search, \
             patch("stripe.Customer.create", return_value=SimpleNamespace(id="cus_new")):
            await service.find_or_create_customer("o'brien@example.com", TEST_USER_ID)

        assert search.call_args.kwargs["query"] == "email:'o\\'brien@example.com'"

    def test_search_literal_escapes_backslash_and_quote(self):
        assert search_literal("plain") == "'plain'"
        assert search_literal("a\\b'c") == "'a\\\\b\\'c'"

    @pytest.mark.asyncio
    async def test_missing_secret_key(self):
        with pytest.raises(ConfigurationError, match="STRIPE_SECRET_KEY"):
            await StripeService(build_settings()).find_customer_by_user_id(TEST_USER_ID)

    def test_valid_signature_decodes_event(self):
        body = json.dumps({"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {}}})

        event = StripeService(build_settings()).verify_webhook_signature(body.encode(), stripe_signature(body))

        assert event["id"] == "evt_1"

    def test_missing_signature_header(self):
        with pytest.raises(ValidationError, match="stripe-signature"):
            StripeService(build_settings()).verify_webhook_signature(b"{}", None)

    def test_signature_from_other_secret_is_rejected(self):
        body = "{}"
        with pytest.raises(ValidationError):
            StripeService(build_settings()).verify_webhook_signature(
                body.encode(), stripe_signature(body, secret="whsec_other"),
            )

    def test_tampered_body_is_rejected(self):
        header = stripe_signature('{"id": "evt_1"}')
        with pytest.raises(ValidationError):
            StripeService(build_settings()).verify_webhook_signature(b'{"id": "evt_2"}', header)


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


def completion(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion("Invoices"))
    return client


class TestOpenAIService:

    @pytest.mark.asyncio
    async def test_categorize_maps_to_label(self, openai_client):
        service = OpenAIService(build_settings(), client=openai_client)

        category = await service.categorize_document("inv-2026-01.pdf", "application/pdf", 2048)

        assert category == DocumentCategory.INVOICES
        kwargs = openai_client.chat.completions.create.await_args.kwargs
        assert kwargs["temperature"] == build_settings().openai_categorizer_temperature
        assert "inv-2026-01.pdf" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_off_list_answer_becomes_other(self, openai_client):
        openai_client.chat.completions.create.return_value = completion("Spreadsheet")

        category = await OpenAIService(build_settings(), client=openai_client).categorize_document("a.xlsx", "x", 1)

        assert category == DocumentCategory.OTHER

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            await OpenAIService(build_settings()).complete([{"role": "user", "content": "hi"}])


# ---------------------------------------------------------------------------
# Retell
# ---------------------------------------------------------------------------


class TestRetellService:

    @pytest.mark.asyncio
    async def test_returns_provider_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.read())
            return httpx.Response(201, json={"call_id": "call_1", "access_token": "tok"})

        service = RetellService(build_settings(retell_api_key="key_1"), transport=httpx.MockTransport(handler))

        data = await service.create_web_call("agent_1", customer_name="Joe", metadata={"plan": "pro"})

        assert data == {"call_id": "call_1", "access_token": "tok"}
        assert seen["path"] == "/v2/create-web-call"
        assert seen["auth"] == "Bearer key_1"
        assert seen["body"]["agent_id"] == "agent_1"
        assert seen["body"]["type"] == "web"
        assert seen["body"]["metadata"] == {"plan": "pro"}

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="Missing RETELL_API_KEY"):
            await RetellService(build_settings()).create_web_call("agent_1")

    @pytest.mark.asyncio
    async def test_provider_error_carries_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(422, text="agent not found"))
        service = RetellService(build_settings(retell_api_key="key_1"), transport=transport)

        with pytest.raises(VoiceProviderError) as exc_info:
            await service.create_web_call("agent_x")

        assert exc_info.value.message == "Retell error: agent not found"
        assert exc_info.value.details["provider_status"] == 422


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestCredentialCipher:

    def test_encrypt_then_decrypt(self):
        cipher = CredentialCipher(build_settings())

        token = cipher.encrypt("bot-token-123")

        assert token != "bot-token-123"
        assert cipher.decrypt(token) == "bot-token-123"

    def test_foreign_token_is_none(self):
        assert CredentialCipher(build_settings()).decrypt("not-a-fernet-token") is None

    def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            CredentialCipher(build_settings(integration_encryption_key=None)).encrypt("x")


# ---------------------------------------------------------------------------
# Receipts
# ---------------------------------------------------------------------------


PNG_BASE64 = "iVBORw0KGgo="


class TestReceipts:

    def test_decode_image_strips_data_url(self):
        assert decode_image(f"data:image/png;base64,{PNG_BASE64}") == decode_image(PNG_BASE64)

    def test_decode_image_rejects_garbage(self):
        with pytest.raises(ValidationError):
            decode_image("@@not base64@@")

    @pytest.mark.asyncio
    async def test_mock_extractor_is_deterministic_with_seed(self):
        first = await MockReceiptExtractor(random.Random(7)).extract(b"img", "r.jpg")
        second = await MockReceiptExtractor(random.Random(7)).extract(b"img", "r.jpg")

        assert first == second
        assert len(first.expenses) == 1
        assert 10 <= first.expenses[0].amount <= 110

    def test_extractor_selection(self):
        assert isinstance(build_receipt_extractor(build_settings()), MockReceiptExtractor)
        assert isinstance(
            build_receipt_extractor(build_settings(receipt_ml_url="https://ocr.example.com/extract")),
            HttpReceiptExtractor,
        )

    @pytest.mark.asyncio
    async def test_http_extractor(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.read())
            assert body["file_name"] == "r.jpg"
            return httpx.Response(200, json={
                "expenses": [{"amount": 18.4, "title": "Lunch", "category": "Food", "date": "2026-01-15"}],
                "confidence": "medium",
            })

        settings = build_settings(receipt_ml_url="https://ocr.example.com/extract")
        extraction = await HttpReceiptExtractor(settings, transport=httpx.MockTransport(handler)).extract(b"img", "r.jpg")

        assert extraction.confidence == ExtractionConfidence.MEDIUM
        assert extraction.expenses[0].category == "meals"

    @pytest.mark.asyncio
    async def test_http_extractor_bad_payload(self):
        settings = build_settings(receipt_ml_url="https://ocr.example.com/extract")
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"nope": True}))

        with pytest.raises(ReceiptExtractionError):
            await HttpReceiptExtractor(settings, transport=transport).extract(b"img", "r.jpg")

    @pytest.mark.asyncio
    async def test_service_requires_fields(self, mock_admin):
        service = ReceiptService(MockReceiptExtractor(), mock_admin, build_settings())

        with pytest.raises(ValidationError, match="Missing required fields"):
            await service.process(TEST_USER_ID, None, "r.jpg")

    @pytest.mark.asyncio
    async def test_service_stores_image(self, mock_admin):
        service = ReceiptService(MockReceiptExtractor(random.Random(1)), mock_admin, build_settings())

        result = await service.process(TEST_USER_ID, PNG_BASE64, "r.jpg", now_ms=1700000000000)

        assert result["success"] is True
        assert result["receiptUrl"].endswith("x.jpg")
        bucket, path = mock_admin.upload_file.await_args.args[:2]
        assert bucket == build_settings().receipts_bucket
        assert path == f"{TEST_USER_ID}/1700000000000-r.jpg"

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_fatal(self, mock_admin):
        mock_admin.upload_file.side_effect = RuntimeError("bucket missing")
        service = ReceiptService(MockReceiptExtractor(), mock_admin, build_settings())

        result = await service.process(TEST_USER_ID, PNG_BASE64, "r.jpg")

        assert result["success"] is True
        assert result["receiptUrl"] is None
        assert len(result["expenses"]) == 1


# ---------------------------------------------------------------------------
# Account deletion
# ---------------------------------------------------------------------------


@pytest.fixture
def account_repo():
    repo = MagicMock()
    repo.delete_user_rows = AsyncMock(return_value=1)
    repo.delete_auth_user = AsyncMock(return_value=False)
    repo.commit = AsyncMock()
    return repo


class TestAccountDeletion:

    @pytest.mark.asyncio
    async def test_admin_api_success(self, account_repo, mock_admin):
        report = await AccountDeletionService(account_repo, mock_admin).delete_account(TEST_USER_ID)

        assert report.method == DeletionMethod.ADMIN_API
        assert len(report.data_cleanup) == len(USER_DATA_TABLES) + len(USER_STORAGE_BUCKETS)
        mock_admin.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_falls_back_to_rpc(self, account_repo, mock_admin):
        mock_admin.delete_user.side_effect = RuntimeError("admin api disabled")

        report = await AccountDeletionService(account_repo, mock_admin).delete_account(TEST_USER_ID)

        body = report.to_response()
        assert body["success"] is True
        assert body["method"] == "rpc"
        mock_admin.rpc.assert_awaited_once_with("delete_auth_user_direct", {"target_user_id": TEST_USER_ID})

    @pytest.mark.asyncio
    async def test_all_strategies_fail(self, account_repo, mock_admin):
        mock_admin.delete_user.side_effect = RuntimeError("admin api disabled")
        mock_admin.rpc.return_value = False

        report = await AccountDeletionService(account_repo, mock_admin).delete_account(TEST_USER_ID)

        body = report.to_response()
        assert report.identity_deleted is False
        assert body["success"] is False
        assert set(body["details"]) == {"admin_api", "rpc", "direct_delete"}
        assert len(body["dataCleanup"]) == len(USER_DATA_TABLES) + len(USER_STORAGE_BUCKETS)

    @pytest.mark.asyncio
    async def test_table_error_does_not_abort(self, account_repo, mock_admin):
        async def delete_rows(table, user_id):
            if table == "messages":
                raise SQLAlchemyError("relation does not exist")
            return 2

        account_repo.delete_user_rows.side_effect = delete_rows

        report = await AccountDeletionService(account_repo, mock_admin).delete_account(TEST_USER_ID)

        by_table = {r.table: r for r in report.data_cleanup}
        assert by_table["messages"].status == CleanupStatus.ERROR
        assert by_table["expenses"].status == CleanupStatus.SUCCESS
        assert by_table["expenses"].deleted_rows == 2
        assert report.identity_deleted is True

    @pytest.mark.asyncio
    async def test_bucket_failure_is_a_warning(self, account_repo, mock_admin):
        mock_admin.list_files.side_effect = RuntimeError("Bucket not found")

        report = await AccountDeletionService(account_repo, mock_admin).delete_account(TEST_USER_ID)

        statuses = {r.table: r.status for r in report.data_cleanup}
        assert statuses["storage:receipts"] == CleanupStatus.WARNING
        assert report.cleanup_payload()[0]["deletedRows"] == 1

    @pytest.mark.asyncio
    async def test_cleanup_is_committed_before_identity_deletion(self, account_repo, mock_admin):
        calls = []
        account_repo.delete_user_rows.side_effect = lambda table, user_id: calls.append(f"delete:{table}") or 1
        account_repo.commit.side_effect = lambda: calls.append("commit")
        mock_admin.delete_user.side_effect = lambda user_id: calls.append("admin_api")

        await AccountDeletionService(account_repo, mock_admin).delete_account(TEST_USER_ID)

        assert calls.index("commit") == len(USER_DATA_TABLES)
        assert calls[-1] == "admin_api"

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_identity(self, account_repo, mock_admin):
        account_repo.commit.side_effect = SQLAlchemyError("connection reset")

        with pytest.raises(DatabaseError):
            await AccountDeletionService(account_repo, mock_admin).delete_account(TEST_USER_ID)

        mock_admin.delete_user.assert_not_called()
        mock_admin.rpc.assert_not_called()
        account_repo.delete_auth_user.assert_not_called()
