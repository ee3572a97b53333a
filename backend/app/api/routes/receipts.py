"""
Receipt API Routes
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.dependencies import ReceiptServiceDep
from app.domain.expense import ProcessReceiptRequest
from app.infrastructure.exceptions import ReceiptExtractionError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process-receipt")
async def process_receipt(request: ProcessReceiptRequest, receipt_service: ReceiptServiceDep):
    """
    Extract expense candidates from a base64 receipt image.

    Nothing is saved as an expense; the client confirms candidates
    through /create-expense.
    """
    try:
        return await receipt_service.process(
            user_id=request.user_id,
            image_base64=request.image_base64,
            file_name=request.file_name,
        )
    except ReceiptExtractionError as e:
        logger.error(f"Receipt extraction failed for user {request.user_id}: {e.message}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process receipt", "details": e.message},
        )
