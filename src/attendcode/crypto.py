"""AES-256-GCM encryption for scope secrets at rest."""

from __future__ import annotations

import base64
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from attendcode.config import settings

_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM


def _get_key() -> bytes:
    raw = settings.master_key
    if not raw:
        raise RuntimeError("ATTENDCODE_MASTER_KEY not set")
    key = base64.b64decode(raw)
    if len(key) != 32:
        raise ValueError("ATTENDCODE_MASTER_KEY must be 32 bytes (base64-encoded)")
    return key


def encrypt(plaintext: str, associated_data: str | None = None) -> str:
    """Encrypt a string. Returns base64(nonce + ciphertext).

    ``associated_data`` (the scope id) binds the ciphertext to its row.
    """
    key = _get_key()
    nonce = os.urandom(_NONCE_SIZE)
    aad = associated_data.encode() if associated_data else None
    ct = AESGCM(key).encrypt(nonce, plaintext.encode(), aad)
    return base64.b64encode(nonce + ct).decode()


def decrypt(token: str, associated_data: str | None = None) -> str:
    """Decrypt a base64(nonce + ciphertext) token back to plaintext."""
    key = _get_key()
    raw = base64.b64decode(token)
    nonce, ct = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
    aad = associated_data.encode() if associated_data else None
    return AESGCM(key).decrypt(nonce, ct, aad).decode()
