"""
Application Settings for the AI Business Assistant backend

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup and the resulting
object is handed to services explicitly.
"""

from functools import lru_cache
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Provider keys are optional so the API can boot with only some
    integrations configured; handlers that need a missing key fail
    with a ConfigurationError when called.
    """

    # Supabase Configuration
    supabase_url: str
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: str
    supabase_jwt_secret: Optional[str] = None

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_api_version: str = "2024-06-20"
    stripe_default_plan_name: str = "Business Pro"

    # Retell (voice calls)
    retell_api_key: Optional[str] = None
    retell_base_url: str = "https://api.retellai.com"

    # OpenAI (chat + document categorization)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_chat_temperature: float = 0.7
    openai_chat_max_tokens: int = 1000
    openai_categorizer_temperature: float = 0.3

    # WhatsApp Cloud API
    whatsapp_verify_token: Optional[str] = None
    whatsapp_access_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_graph_api_url: str = "https://graph.facebook.com/v18.0"

    # Receipt OCR / ML endpoint (mock extractor is used when unset)
    receipt_ml_url: Optional[str] = None
    receipt_ml_api_key: Optional[str] = None
    receipts_bucket: str = "receipts"

    # Fernet key used to encrypt integration credentials
    integration_encryption_key: Optional[str] = None

    # Usage limits (-1 means unlimited)
    free_receipt_uploads_limit: int = 5
    free_ai_content_limit: int = 5

    # Chat context
    chat_history_limit: int = 20

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration (edge functions answered every origin)
    allowed_origins: list[str] = ["*"]

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Database Configuration (SQLModel/SQLAlchemy)
    supabase_password: Optional[str] = None
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        """Accept lowercase log levels from the environment."""
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported LOG_LEVEL: {value}")
        return level

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
