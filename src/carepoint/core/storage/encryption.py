"""Fernet-based field encryption for tracker data at rest.

Free text (notes, names) and questionnaire answers are encrypted before
writing to SQLite. Categorical tracker fields and dose statuses stay in
plain columns so assessments can query them directly.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class FieldEncryptor:
    """Encrypts JSON-serializable values and free-text fields with Fernet.

    Usage::

        encryptor = FieldEncryptor(key="...")
        token = encryptor.encrypt({"acne": "severe"})
        encryptor.decrypt(token)  # {"acne": "severe"}

        note = encryptor.encrypt_text("slept badly")
        encryptor.decrypt_text(note)  # "slept badly"
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            key: A valid Fernet key string, e.g. from :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.strip().encode("utf-8"))
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, data: Any) -> str:
        """Encrypt a JSON-serializable value to a Fernet token string.

        ``None`` encrypts to the empty string so nullable columns stay empty.

        Raises:
            EncryptionError: If serialization fails.
        """
        if data is None:
            return ""
        try:
            plaintext = json.dumps(data, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc
        return self._fernet.encrypt(plaintext).decode("utf-8")

    def decrypt(self, token: str | None) -> Any:
        """Decrypt a Fernet token back to the original value.

        Raises:
            EncryptionError: If the token is invalid or was made with another key.
        """
        if not token:
            return None
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        try:
            return json.loads(plaintext)
        except ValueError as exc:
            raise EncryptionError(f"Decryption failed: {exc}") from exc

    def encrypt_text(self, text: str | None) -> str:
        """Encrypt a free-text field; empty text is stored as an empty string."""
        if not text:
            return ""
        return self.encrypt(text)

    def decrypt_text(self, token: str | None) -> str:
        """Decrypt a free-text field, returning ``""`` for empty columns."""
        value = self.decrypt(token)
        return "" if value is None else str(value)

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64 Fernet key."""
        return Fernet.generate_key().decode("utf-8")
