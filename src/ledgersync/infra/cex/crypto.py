"""Fernet encryption of stored connection credentials."""

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from ledgersync.exceptions import ConfigurationError


class CredentialCipher:
    """Encrypts API keys/secrets at rest with a key derived from settings."""

    def __init__(self, key: str) -> None:
        if not key:
            raise ConfigurationError("An encryption key is required to store connection credentials")
        # any string works as a secret; Fernet needs 32 url-safe base64 bytes
        self._fernet = Fernet(base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest()))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as exc:
            raise ConfigurationError("Stored credentials cannot be decrypted with the configured key") from exc
