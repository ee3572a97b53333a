"""
Unit tests for WhatsApp message classification and handling.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.domain.expense import ExpenseSource
from app.domain.integration import normalize_phone_number
from app.domain.whatsapp import (
    GENERAL_QUERY_REPLY,
    HELP_REPLY,
    NEED_MORE_DETAILS_REPLY,
    UNLINKED_NUMBER_REPLY,
    MessageIntent,
    WhatsAppWebhookPayload,
    classify_message,
    detect_category,
)
from app.infrastructure.messaging.whatsapp_client import WhatsAppClient
from app.infrastructure.services.whatsapp_service import WhatsAppService

from conftest import TEST_USER_ID, build_settings


def payload(text: str, message_id: str = "wamid.1", sender: str = "15550102000") -> WhatsAppWebhookPayload:
    return WhatsAppWebhookPayload.model_validate({
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "waba-1",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "messages": [{
                        "id": message_id,
                        "from": sender,
                        "timestamp": "1767225600",
                        "type": "text",
                        "text": {"body": text},
                    }],
                },
            }],
        }],
    })


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassification:

    def test_expense_message(self):
        result = classify_message("I spent $25 on lunch at Joe's Cafe")

        assert result.intent == MessageIntent.EXPENSE
        assert result.expense.amount == 25.0
        assert result.expense.category == "food"
        assert result.expense.description == "lunch"

    def test_question(self):
        assert classify_message("How do I reset my password").intent == MessageIntent.GENERAL_QUERY

    def test_unrecognized(self):
        assert classify_message("hello").intent == MessageIntent.UNKNOWN

    def test_expense_keywords_win_over_question_keywords(self):
        assert classify_message("what did I spend on coffee").intent == MessageIntent.EXPENSE

    def test_decimal_amount(self):
        result = classify_message("paid $12.50 for taxi")
        assert result.expense.amount == 12.5
        assert result.expense.category == "travel"

    def test_missing_amount_is_incomplete(self):
        result = classify_message("bought supplies")
        assert result.expense.amount is None
        assert result.expense.is_complete is False

    @pytest.mark.parametrize("text, expected", [
        ("hotel in Lisbon", "travel"),
        ("new software license", "office"),
        ("promotion flyers", "marketing"),
        ("plumbing", "other"),
    ])
    def test_detect_category(self, text, expected):
        assert detect_category(text) == expected


def test_normalize_phone_number():
    assert normalize_phone_number("+1 (555) 010-2000") == "15550102000"
    assert normalize_phone_number("---") is None
    assert normalize_phone_number(None) is None


# ---------------------------------------------------------------------------
# WhatsAppService
# ---------------------------------------------------------------------------


@pytest.fixture
def integration_repo():
    repo = MagicMock()
    repo.find_user_by_address = AsyncMock(return_value=TEST_USER_ID)
    return repo


@pytest.fixture
def whatsapp_client():
    client = MagicMock()
    client.send_text = AsyncMock(return_value=True)
    return client


@pytest.fixture
def service(integration_repo, mock_expense_repo, whatsapp_client):
    return WhatsAppService(integration_repo, mock_expense_repo, whatsapp_client)


class TestWhatsAppService:

    @pytest.mark.asyncio
    async def test_records_expense_for_linked_number(self, service, mock_expense_repo, whatsapp_client):
        handled = await service.handle_payload(payload("I spent $25 on lunch at Joe's Cafe"))

        assert handled == 1
        expense = mock_expense_repo.create.await_args.args[0]
        assert expense.user_id == TEST_USER_ID
        assert expense.amount == 25.0
        assert expense.title == "lunch"
        assert expense.category.value == "meals"
        assert expense.source == ExpenseSource.WHATSAPP
        assert expense.external_message_id == "wamid.1"

        to, reply = whatsapp_client.send_text.await_args.args
        assert to == "15550102000"
        assert "Expense recorded successfully" in reply

    @pytest.mark.asyncio
    async def test_unlinked_number(self, service, integration_repo, mock_expense_repo, whatsapp_client):
        integration_repo.find_user_by_address.return_value = None

        await service.handle_payload(payload("I spent $25 on lunch"))

        mock_expense_repo.create.assert_not_called()
        whatsapp_client.send_text.assert_awaited_once_with("15550102000", UNLINKED_NUMBER_REPLY)

    @pytest.mark.asyncio
    async def test_redelivered_message_is_not_recorded_twice(self, service, mock_expense_repo, whatsapp_client):
        mock_expense_repo.get_by_external_message_id.return_value = MagicMock()

        await service.handle_payload(payload("I spent $25 on lunch"))

        mock_expense_repo.create.assert_not_called()
        whatsapp_client.send_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_incomplete_expense_asks_for_details(self, service, mock_expense_repo, whatsapp_client):
        await service.handle_payload(payload("bought supplies"))

        mock_expense_repo.create.assert_not_called()
        whatsapp_client.send_text.assert_awaited_once_with("15550102000", NEED_MORE_DETAILS_REPLY)

    @pytest.mark.asyncio
    async def test_canned_replies(self, service, whatsapp_client):
        await service.handle_payload(payload("How does this work?", message_id="wamid.2"))
        await service.handle_payload(payload("hello", message_id="wamid.3"))

        replies = [call.args[1] for call in whatsapp_client.send_text.await_args_list]
        assert replies == [GENERAL_QUERY_REPLY, HELP_REPLY]

    @pytest.mark.asyncio
    async def test_non_text_messages_are_ignored(self, service, whatsapp_client):
        image = WhatsAppWebhookPayload.model_validate({
            "object": "whatsapp_business_account",
            "entry": [{"changes": [{"field": "messages", "value": {
                "messages": [{"id": "wamid.4", "from": "15550102000", "type": "image"}],
            }}]}],
        })

        assert await service.handle_payload(image) == 1
        whatsapp_client.send_text.assert_not_called()


# ---------------------------------------------------------------------------
# WhatsAppClient
# ---------------------------------------------------------------------------


class TestWhatsAppClient:

    @pytest.mark.asyncio
    async def test_unconfigured_client_does_not_send(self):
        client = WhatsAppClient(build_settings())
        assert client.configured is False
        assert await client.send_text("15550102000", "hi") is False

    @pytest.mark.asyncio
    async def test_sends_graph_api_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.read()
            return httpx.Response(200, json={"messages": [{"id": "wamid.out"}]})

        settings = build_settings(whatsapp_access_token="token-1", whatsapp_phone_number_id="12345")
        client = WhatsAppClient(settings, transport=httpx.MockTransport(handler))

        assert await client.send_text("15550102000", "hi") is True
        assert seen["url"].endswith("/12345/messages")
        assert seen["auth"] == "Bearer token-1"
        assert b'"messaging_product":"whatsapp"' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_rejected_send_returns_false(self):
        settings = build_settings(whatsapp_access_token="token-1", whatsapp_phone_number_id="12345")
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="bad token"))

        assert await WhatsAppClient(settings, transport=transport).send_text("1555", "hi") is False
