"""
WhatsApp Message Service

Handles verified Cloud API deliveries: classifies each inbound text,
records expenses for linked numbers and answers with canned replies.
"""

import logging

from app.domain.expense import ExpenseSource
from app.domain.integration import IntegrationType, normalize_phone_number
from app.domain.whatsapp import (
    EXPENSE_FAILED_REPLY,
    GENERAL_QUERY_REPLY,
    HELP_REPLY,
    NEED_MORE_DETAILS_REPLY,
    UNLINKED_NUMBER_REPLY,
    InboundMessage,
    MessageIntent,
    WhatsAppWebhookPayload,
    classify_message,
    expense_recorded_reply,
)
from app.infrastructure.db.repositories.expense_repository import ExpenseRepository
from app.infrastructure.db.repositories.integration_repository import IntegrationRepository
from app.infrastructure.exceptions import AssistantError
from app.infrastructure.messaging.whatsapp_client import WhatsAppClient
from app.infrastructure.services.expense_service import ExpenseService


logger = logging.getLogger(__name__)


class WhatsAppService:

    def __init__(
        self,
        integration_repo: IntegrationRepository,
        expense_repo: ExpenseRepository,
        client: WhatsAppClient,
    ):
        self._integrations = integration_repo
        self._expense_repo = expense_repo
        self._expenses = ExpenseService(expense_repo)
        self._client = client

    async def handle_payload(self, payload: WhatsAppWebhookPayload) -> int:
        """Process every message change in the delivery; returns messages handled."""
        handled = 0
        for entry in payload.entry:
            for change in entry.changes:
                if change.field != "messages":
                    continue
                for message in change.value.messages:
                    await self.handle_message(message)
                    handled += 1
                for status in change.value.statuses:
                    logger.info(
                        "[WHATSAPP] Status update %s: %s",
                        status.get("id"),
                        status.get("status"),
                    )
        return handled

    async def handle_message(self, message: InboundMessage) -> None:
        if message.type != "text" or message.text is None or not message.text.body:
            logger.debug("[WHATSAPP] Ignoring %s message %s", message.type, message.id)
            return

        classified = classify_message(message.text.body)
        logger.info("[WHATSAPP] Message %s from %s classified as %s", message.id, message.sender, classified.intent.value)

        if classified.intent == MessageIntent.EXPENSE:
            reply = await self._record_expense(message, classified.expense)
        elif classified.intent == MessageIntent.GENERAL_QUERY:
            reply = GENERAL_QUERY_REPLY
        else:
            reply = HELP_REPLY

        if reply:
            await self._client.send_text(message.sender, reply)

    async def _record_expense(self, message: InboundMessage, expense) -> str:
        if expense is None or not expense.is_complete:
            return NEED_MORE_DETAILS_REPLY

        address = normalize_phone_number(message.sender)
        user_id = await self._integrations.find_user_by_address(IntegrationType.WHATSAPP, address) if address else None
        if user_id is None:
            logger.info("[WHATSAPP] No linked account for %s", message.sender)
            return UNLINKED_NUMBER_REPLY

        # Cloud API redelivers until it gets a 200; one expense per message id.
        if await self._expense_repo.get_by_external_message_id(user_id, message.id):
            logger.info("[WHATSAPP] Message %s already recorded", message.id)
            return ""

        try:
            await self._expenses.create_expense(
                user_id=user_id,
                title=expense.description[:255],
                amount=expense.amount,
                category=expense.category,
                description=f"WhatsApp expense: {message.text.body}",
                source=ExpenseSource.WHATSAPP,
                external_message_id=message.id,
            )
        except AssistantError as e:
            logger.error("[WHATSAPP] Could not record expense from %s: %s", message.id, e.message)
            return EXPENSE_FAILED_REPLY

        return expense_recorded_reply(expense)
