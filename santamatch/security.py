from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app
from passlib.context import CryptContext


passkeys = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_client_key(client_hash: str) -> str:
    return passkeys.hash(client_hash)


def verify_client_key(client_hash: str, stored_hash: str) -> bool:
    """Checks the browser's SHA-256(passphrase) against a stored argon2 hash."""
    return passkeys.verify(client_hash, stored_hash)


def _recipient_cipher() -> Fernet:
    # ASSIGNMENT_ENC_KEY wins; otherwise the key is derived from SECRET_KEY
    key = (current_app.config.get("ASSIGNMENT_ENC_KEY") or "").strip().encode("utf-8")
    if not key:
        secret = (current_app.config.get("SECRET_KEY") or "").encode("utf-8")
        key = base64.urlsafe_b64encode(hashlib.sha256(b"santamatch-recipients|" + secret).digest())
    return Fernet(key)


def encrypt_recipient(recipient_id: str) -> str:
    return _recipient_cipher().encrypt(recipient_id.encode("utf-8")).decode("utf-8")


def decrypt_recipient(token: str) -> str:
    """Raises ValueError when the token was not made with the current key."""
    try:
        return _recipient_cipher().decrypt(token.encode("utf-8")).decode("utf-8")
    except InvalidToken as e:
        raise ValueError("Invalid recipient token") from e
