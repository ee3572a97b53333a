"""
Receipt Extractors

Interface for turning a receipt image into expense candidates, with an
HTTP implementation for a real OCR/ML endpoint and a mock that makes up
a plausible candidate for local development.
"""

import base64
import logging
import random
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from app.config.settings import Settings
from app.domain.expense import ExtractedExpense, ExtractionConfidence, ReceiptExtraction
from app.infrastructure.exceptions import ReceiptExtractionError


logger = logging.getLogger(__name__)


class ReceiptExtractor(ABC):

    @abstractmethod
    async def extract(self, image: bytes, file_name: str) -> ReceiptExtraction:
        """Read expense candidates off ``image``."""
        pass


class HttpReceiptExtractor(ReceiptExtractor):
    """
    Posts the image to an OCR/ML service.

    The service receives ``{"image_base64", "file_name"}`` and must
    answer with the ReceiptExtraction shape (``expenses``,
    ``confidence``, optional ``raw_data``).
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._url = settings.receipt_ml_url
        self._api_key = settings.receipt_ml_api_key
        self._timeout = settings.http_timeout_seconds
        self._transport = transport

    async def extract(self, image: bytes, file_name: str) -> ReceiptExtraction:
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self._url,
                    headers=headers,
                    json={
                        "image_base64": base64.b64encode(image).decode(),
                        "file_name": file_name,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ReceiptExtractionError(
                    f"Receipt extraction failed: {e.response.text}",
                    provider="receipt_ml",
                    status=e.response.status_code,
                    original_error=e,
                )
            except httpx.HTTPError as e:
                raise ReceiptExtractionError(f"Receipt extraction failed: {e}", provider="receipt_ml", original_error=e)

        try:
            return ReceiptExtraction.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ReceiptExtractionError(
                "Receipt extraction returned an unexpected payload",
                provider="receipt_ml",
                original_error=e,
            )


MOCK_TITLES = (
    "Restaurant Meal", "Office Supplies", "Taxi Ride", "Coffee & Snacks",
    "Business Lunch", "Hotel Stay", "Equipment Purchase", "Software Subscription",
)
MOCK_DESCRIPTIONS = (
    "Business meeting expense", "Client entertainment", "Office equipment",
    "Travel expense", "Marketing materials", "Professional services",
)
MOCK_CATEGORIES = ("meals", "travel", "office", "marketing", "software", "other")
MOCK_VENDORS = (
    "Starbucks", "Uber", "Amazon", "Office Depot", "Marriott Hotel",
    "Local Restaurant", "Tech Store",
)


class MockReceiptExtractor(ReceiptExtractor):
    """Fabricates one candidate; used when no OCR endpoint is configured."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    async def extract(self, image: bytes, file_name: str) -> ReceiptExtraction:
        rng = self._rng
        candidate = ExtractedExpense(
            amount=round(rng.uniform(10, 110), 2),
            title=rng.choice(MOCK_TITLES),
            description=rng.choice(MOCK_DESCRIPTIONS),
            category=rng.choice(MOCK_CATEGORIES),
            date=date.today().isoformat(),
            vendor=rng.choice(MOCK_VENDORS),
            tax=round(rng.uniform(0, 10), 2),
            subtotal=None,
            currency="USD",
        )
        confidence = ExtractionConfidence.HIGH if rng.random() > 0.3 else ExtractionConfidence.MEDIUM
        logger.debug(f"Mock extraction for {file_name} ({len(image)} bytes)")
        return ReceiptExtraction(
            expenses=[candidate],
            confidence=confidence,
            raw_data={
                "extractedText": "Sample OCR text from receipt...",
                "detectedFields": ["amount", "date", "vendor"],
                "extractor": "mock",
            },
        )


def build_receipt_extractor(settings: Settings) -> ReceiptExtractor:
    if settings.receipt_ml_url:
        return HttpReceiptExtractor(settings)
    logger.warning("RECEIPT_ML_URL not set; using mock receipt extractor")
    return MockReceiptExtractor()
