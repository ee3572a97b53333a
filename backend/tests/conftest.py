"""
Test configuration and fixtures for the AI Business Assistant.

Required settings are seeded into the environment before the app is
imported; individual tests build their own Settings when they need a
provider key present or absent.
"""

import os

os.environ.setdefault("SUPABASE_URL", "https://testproject.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("WHATSAPP_VERIFY_TOKEN", "verify-me")

import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from app.config.settings import Settings


TEST_USER_ID = "00000000-0000-0000-0000-000000000001"
TEST_FERNET_KEY = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="


def build_settings(**overrides) -> Settings:
    """Settings independent of the developer's environment and .env file."""
    values = {
        "supabase_url": "https://testproject.supabase.co",
        "supabase_service_role_key": "test-service-role-key",
        "supabase_jwt_secret": "test-jwt-secret-that-is-long-enough-for-hs256",
        "stripe_secret_key": None,
        "stripe_webhook_secret": "whsec_test_secret",
        "retell_api_key": None,
        "openai_api_key": None,
        "whatsapp_verify_token": "verify-me",
        "whatsapp_access_token": None,
        "whatsapp_phone_number_id": None,
        "receipt_ml_url": None,
        "integration_encryption_key": TEST_FERNET_KEY,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def app():
    """Get the FastAPI application; overrides are cleared after each test."""
    from app.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Synchronous test client (lifespan not run, so no database is touched)."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def authenticated(app):
    """Resolve every bearer-authenticated request to TEST_USER_ID."""
    from app.api.dependencies import get_current_user_id

    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID
    return TEST_USER_ID


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_subscription_repo():
    repo = MagicMock()
    repo.get_by_user_id = AsyncMock(return_value=None)
    repo.get_by_stripe_subscription_id = AsyncMock(return_value=None)
    repo.upsert = AsyncMock(side_effect=lambda subscription: subscription)
    return repo


@pytest.fixture
def mock_usage_repo():
    repo = MagicMock()
    repo.get = AsyncMock(return_value=None)
    repo.increment = AsyncMock()
    return repo


@pytest.fixture
def mock_expense_repo():
    repo = MagicMock()
    repo.create = AsyncMock(side_effect=lambda expense: expense.model_copy(update={"id": "exp-1"}))
    repo.update = AsyncMock()
    repo.get_by_external_message_id = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_admin():
    """SupabaseAdminService double."""
    admin = MagicMock()
    admin.get_user_email = AsyncMock(return_value="owner@example.com")
    admin.delete_user = AsyncMock()
    admin.rpc = AsyncMock(return_value=True)
    admin.list_files = AsyncMock(return_value=[])
    admin.remove_files = AsyncMock(return_value=0)
    admin.upload_file = AsyncMock(return_value="https://testproject.supabase.co/storage/v1/object/public/receipts/x.jpg")
    return admin
