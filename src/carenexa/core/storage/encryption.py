"""Encryption at rest for persisted key-value slots.

``ENCRYPTION_KEY`` holds one Fernet key, or several separated by commas.
The first key encrypts new writes; every listed key can decrypt, so a key is
rotated by putting the new one in front and re-saving.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class ValueEncryptor:
    """Encrypts stored string values with one or more Fernet keys.

    Usage::

        encryptor = ValueEncryptor(ValueEncryptor.generate_key())
        token = encryptor.encrypt('{"vitaPoints": 0}')
        encryptor.decrypt(token)  # '{"vitaPoints": 0}'
    """

    def __init__(self, keys: str) -> None:
        """
        Args:
            keys: A Fernet key, or comma-separated keys with the current one first.

        Raises:
            EncryptionError: If no key is given or any key is malformed.
        """
        parts = [k.strip() for k in (keys or "").split(",") if k.strip()]
        if not parts:
            raise EncryptionError("Encryption key must not be empty")
        try:
            fernets = [Fernet(k.encode()) for k in parts]
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc
        self._fernet = MultiFernet(fernets)
        self.key_count = len(fernets)

    def encrypt(self, text: str) -> str:
        """Encrypt ``text`` with the current key."""
        return self._fernet.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt a token made with any configured key.

        Raises:
            EncryptionError: If the token is corrupt or no configured key fits.
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    def rotate(self, token: str) -> str:
        """Re-encrypt ``token`` under the current key.

        Raises:
            EncryptionError: If no configured key can decrypt the token.
        """
        try:
            return self._fernet.rotate(token.encode("ascii")).decode("ascii")
        except (InvalidToken, UnicodeError) as exc:
            raise EncryptionError("Rotation failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64-encoded 32-byte Fernet key."""
        return Fernet.generate_key().decode("ascii")
