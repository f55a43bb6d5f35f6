"""Tests for FieldEncryptor (Fernet encryption of notes and answers)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from carepoint.core.storage.encryption import EncryptionError, FieldEncryptor


@pytest.fixture
def encryptor() -> FieldEncryptor:
    return FieldEncryptor(Fernet.generate_key().decode())


class TestValues:
    def test_answers_dict(self, encryptor: FieldEncryptor):
        answers = {"acne": "severe", "cycle_length": 40, "height_cm": 160.0}
        token = encryptor.encrypt(answers)
        assert "severe" not in token
        assert encryptor.decrypt(token) == answers

    def test_none_is_stored_empty(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt(None) == ""
        assert encryptor.decrypt("") is None
        assert encryptor.decrypt(None) is None


class TestText:
    def test_note_text(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt_text("woke up twice")
        assert token != "woke up twice"
        assert encryptor.decrypt_text(token) == "woke up twice"

    def test_empty_text(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt_text("") == ""
        assert encryptor.encrypt_text(None) == ""
        assert encryptor.decrypt_text("") == ""


class TestKeyValidation:
    def test_empty_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("  ")

    def test_invalid_key_raises(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            FieldEncryptor("not-a-valid-fernet-key")

    def test_generated_key_is_usable(self):
        key = FieldEncryptor.generate_key()
        assert FieldEncryptor(key).decrypt_text(FieldEncryptor(key).encrypt_text("x")) == "x"


class TestWrongKey:
    def test_other_key_cannot_decrypt(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt_text("private")
        other = FieldEncryptor(Fernet.generate_key().decode())
        with pytest.raises(EncryptionError, match="Decryption failed"):
            other.decrypt_text(token)

    def test_garbage_token_raises(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.decrypt("not-a-token")
