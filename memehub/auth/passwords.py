from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes of the secret.
MAX_PASSWORD_BYTES = 72
_ROUNDS = 10


class PasswordTooLongError(ValueError):
    pass


def _encode(password: str) -> bytes:
    raw = str(password or "").encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise PasswordTooLongError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return raw


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        raw = _encode(password)
    except PasswordTooLongError:
        return False
    try:
        return bcrypt.checkpw(raw, str(password_hash).encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False
