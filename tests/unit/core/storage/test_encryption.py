"""Tests for the FieldEncryptor (Fernet encryption of check-in values)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from aura.core.storage.encryption import EncryptionError, FieldEncryptor


@pytest.fixture
def encryptor() -> FieldEncryptor:
    return FieldEncryptor(Fernet.generate_key().decode())


class TestRoundTrip:
    def test_check_in_dict(self, encryptor):
        data = {"stress_level": 4, "hydration_level": None, "date": "2026-03-11"}
        token = encryptor.encrypt(data)
        assert token and "stress_level" not in token
        assert encryptor.decrypt(token) == data

    def test_none_maps_to_empty_token(self, encryptor):
        assert encryptor.encrypt(None) == ""
        assert encryptor.decrypt("") is None


class TestErrors:
    @pytest.mark.parametrize("key", ["", "   ", "not-a-fernet-key"])
    def test_bad_keys_rejected(self, key):
        with pytest.raises(EncryptionError):
            FieldEncryptor(key)

    def test_wrong_key_cannot_decrypt(self, encryptor):
        token = encryptor.encrypt({"caffeine_intake": 3})
        other = FieldEncryptor(FieldEncryptor.generate_key())
        with pytest.raises(EncryptionError):
            other.decrypt(token)

    def test_unserializable_value(self, encryptor):
        with pytest.raises(EncryptionError):
            encryptor.encrypt({"when": object()})
