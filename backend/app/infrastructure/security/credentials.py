"""
Credential Encryption

Fernet symmetric encryption for integration secrets (bot tokens, API
keys) before they are written to the integrations table.
"""

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from app.config.settings import Settings
from app.infrastructure.exceptions import ConfigurationError


class CredentialCipher:

    def __init__(self, settings: Settings):
        self._key = settings.integration_encryption_key
        self._fernet: Optional[Fernet] = None

    @property
    def fernet(self) -> Fernet:
        if self._fernet is None:
            if not self._key:
                raise ConfigurationError(
                    "Integration encryption key not configured",
                    missing_keys=["INTEGRATION_ENCRYPTION_KEY"],
                )
            try:
                self._fernet = Fernet(self._key.encode())
            except ValueError as e:
                raise ConfigurationError("INTEGRATION_ENCRYPTION_KEY is not a valid Fernet key", original_error=e)
        return self._fernet

    def encrypt(self, plaintext: str) -> str:
        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> Optional[str]:
        """None when the token was not produced with this key."""
        try:
            return self.fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            return None
