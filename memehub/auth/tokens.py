from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from jose import JWTError, jwt

from ..settings import settings

ALGORITHM = "HS256"


class AuthError(Exception):
    def __init__(self, message: str, *, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class VerifiedUser:
    sub: str
    role: str
    permissions: list[str] = field(default_factory=list)
    claims: dict[str, Any] = field(default_factory=dict)


def issue_token(*, user_id: str, role: str, permissions: list[str] | None = None) -> str:
    now = int(time.time())
    claims = {
        "sub": str(user_id),
        "role": str(role or "user"),
        "permissions": list(permissions or []),
        "iat": now,
        "exp": now + int(settings.jwt_expires_hours) * 3600,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=ALGORITHM)


def token_for_user(user: dict[str, Any]) -> str:
    return issue_token(
        user_id=str(user.get("userId") or ""),
        role=str(user.get("role") or "user"),
        permissions=list(user.get("permissions") or []),
    )


def verify_bearer_token(token: str) -> VerifiedUser:
    if not token:
        raise AuthError("Missing token")
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as e:
        raise AuthError("Invalid or expired token") from e

    sub = str(claims.get("sub") or "").strip()
    if not sub:
        raise AuthError("Invalid token subject")

    perms = claims.get("permissions")
    return VerifiedUser(
        sub=sub,
        role=str(claims.get("role") or "user"),
        permissions=[str(p) for p in perms] if isinstance(perms, list) else [],
        claims=claims,
    )
