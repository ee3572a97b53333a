"""
Custom Exceptions for the AI Business Assistant

Hierarchical exception classes for proper error handling across layers.
The HTTP status for each family is attached to the class so the
exception handlers in app.main can translate them uniformly.
"""

from typing import Optional, Dict, Any


class AssistantError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.message,
            **self.details,
        }


class ValidationError(AssistantError):
    """Raised when input validation fails."""
    status_code = 400


class AuthenticationError(AssistantError):
    """Raised when the caller cannot be identified."""
    status_code = 401


class UsageLimitError(AssistantError):
    """Raised when a metered action would exceed the plan quota."""
    status_code = 403


class DatabaseError(AssistantError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    status_code = 404


class DuplicateError(DatabaseError):
    """Raised when attempting to create a duplicate resource."""
    status_code = 409


class ConfigurationError(AssistantError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)


class ProviderError(AssistantError):
    """Raised when a third-party API rejects or fails a request."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if provider:
            details["provider"] = provider
        if status:
            details["provider_status"] = status
        super().__init__(message, details, original_error)


class BillingProviderError(ProviderError):
    """Raised when Stripe operations fail."""
    pass


class AIServiceError(ProviderError):
    """Raised when OpenAI operations fail."""
    pass


class VoiceProviderError(ProviderError):
    """Raised when the Retell web-call handshake fails."""
    pass


class MessagingProviderError(ProviderError):
    """Raised when the WhatsApp Cloud API rejects a send."""
    pass


class ReceiptExtractionError(ProviderError):
    """Raised when the OCR/ML endpoint cannot extract a receipt."""
    pass


class WebhookProcessingError(AssistantError):
    """Raised when a verified webhook event cannot be applied."""
    pass
