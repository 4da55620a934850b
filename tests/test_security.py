import pytest
from cryptography.fernet import Fernet

from santamatch.security import decrypt_recipient, encrypt_recipient, hash_client_key, verify_client_key


def test_recipient_token_hides_the_id(app):
    token = encrypt_recipient("user-42")
    assert "user-42" not in token
    assert decrypt_recipient(token) == "user-42"


def test_token_from_another_key_is_rejected(app):
    token = encrypt_recipient("user-42")
    app.config["ASSIGNMENT_ENC_KEY"] = Fernet.generate_key().decode("utf-8")
    with pytest.raises(ValueError):
        decrypt_recipient(token)


def test_explicit_key_is_used(app):
    key = Fernet.generate_key()
    app.config["ASSIGNMENT_ENC_KEY"] = key.decode("utf-8")
    token = encrypt_recipient("user-7")
    assert Fernet(key).decrypt(token.encode("utf-8")) == b"user-7"


def test_client_key_hash_round_trip():
    stored = hash_client_key("abc123")
    assert verify_client_key("abc123", stored)
    assert not verify_client_key("abc124", stored)
