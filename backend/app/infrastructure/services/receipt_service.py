"""
Receipt Service

Decodes an uploaded receipt image, extracts expense candidates and keeps
a copy of the image in storage. Nothing is written to the expenses
table here; the client confirms candidates through create-expense.
"""

import base64
import binascii
import logging
import re
import time
from typing import Any, Dict, Optional

from app.config.settings import Settings
from app.infrastructure.exceptions import ValidationError
from app.infrastructure.receipts.extractors import ReceiptExtractor
from app.infrastructure.supabase_admin.admin_service import SupabaseAdminService


logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/[a-z]+;base64,")


def decode_image(image_base64: str) -> bytes:
    """Strip an optional data-URL prefix and decode."""
    payload = DATA_URL_PREFIX.sub("", image_base64.strip())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid base64 image data")


class ReceiptService:

    def __init__(
        self,
        extractor: ReceiptExtractor,
        admin: SupabaseAdminService,
        settings: Settings,
    ):
        self._extractor = extractor
        self._admin = admin
        self._bucket = settings.receipts_bucket

    async def process(
        self,
        user_id: Optional[str],
        image_base64: Optional[str],
        file_name: str,
        now_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: user id or image missing, or undecodable image
            ReceiptExtractionError: the extractor failed
        """
        if not user_id or not image_base64:
            raise ValidationError("Missing required fields")

        image = decode_image(image_base64)
        extraction = await self._extractor.extract(image, file_name)

        path = f"{user_id}/{now_ms or int(time.time() * 1000)}-{file_name}"
        receipt_url = await self._store(path, image)

        return {
            "success": True,
            "expenses": [e.model_dump() for e in extraction.expenses],
            "receiptUrl": receipt_url,
            "confidence": extraction.confidence.value,
            "rawExtraction": extraction.raw_data,
        }

    async def _store(self, path: str, image: bytes) -> Optional[str]:
        try:
            return await self._admin.upload_file(self._bucket, path, image, "image/jpeg")
        except Exception as e:
            logger.error(f"Storage error for {path}: {e}")
            return None
