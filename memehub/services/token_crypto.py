from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..settings import settings

_PREFIX = "c1"
_NONCE_BYTES = 12
# Binds sealed cursors to their purpose so they cannot be replayed elsewhere.
_AAD = b"memehub-cursor"


def _key() -> bytes:
    return hashlib.sha256(f"cursor:{settings.jwt_secret}".encode("utf-8")).digest()


def seal(plain_text: str) -> str:
    """Encrypt and authenticate a short string into a URL-safe opaque token."""
    nonce = os.urandom(_NONCE_BYTES)
    sealed = AESGCM(_key()).encrypt(nonce, plain_text.encode("utf-8"), _AAD)
    body = base64.urlsafe_b64encode(nonce + sealed).decode("ascii").rstrip("=")
    return f"{_PREFIX}.{body}"


def unseal(token: str | None) -> str | None:
    """Inverse of seal(); None for anything forged, truncated or from another key."""
    prefix, _, body = str(token or "").partition(".")
    if prefix != _PREFIX or not body:
        return None
    try:
        raw = base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
    except (binascii.Error, ValueError):
        return None
    if len(raw) <= _NONCE_BYTES + 16:
        return None
    try:
        plain = AESGCM(_key()).decrypt(raw[:_NONCE_BYTES], raw[_NONCE_BYTES:], _AAD)
    except InvalidTag:
        return None
    return plain.decode("utf-8")
