"""
AI API Routes

Chat completion proxy and document categorization, both backed by
OpenAI chat completions.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.dependencies import ChatServiceDep, OpenAIServiceDep
from app.domain.chat import CategorizeRequest, ChatRequest, ChatResponse, DocumentCategory


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/ai-chat", response_model=ChatResponse)
async def ai_chat(request: ChatRequest, chat_service: ChatServiceDep):
    """
    One assistant turn.

    With ``conversationId`` the recent history is replayed to the model
    and both messages are stored; without it the turn is stateless.
    """
    answer = await chat_service.reply(
        message=request.message,
        user_id=request.user_id,
        conversation_id=request.conversation_id,
    )
    return ChatResponse(message=answer)


@router.post("/ai-document-categorizer")
async def categorize_document(request: CategorizeRequest, openai_service: OpenAIServiceDep):
    """Label an uploaded document from its name, type and size."""
    try:
        category = await openai_service.categorize_document(
            request.file_name, request.file_type, request.file_size
        )
    except Exception as e:
        logger.warning(f"Categorization failed for {request.file_name!r}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": str(e), "category": DocumentCategory.OTHER.value},
        )

    return {"category": category.value, "success": True}
