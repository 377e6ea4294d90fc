from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from .tokens import VerifiedUser

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"

ALL_ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPER_ADMIN)


def normalize_role(value: Any) -> str:
    """
    Canonical lower_snake role name. Unknown values collapse to ``user``.
    """
    s = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if s in ("superadmin", "super_admin"):
        return ROLE_SUPER_ADMIN
    if s == ROLE_ADMIN:
        return ROLE_ADMIN
    return ROLE_USER


def is_admin(role: Any) -> bool:
    return normalize_role(role) in (ROLE_ADMIN, ROLE_SUPER_ADMIN)


def is_super_admin(role: Any) -> bool:
    return normalize_role(role) == ROLE_SUPER_ADMIN


def current_user(request: Request) -> VerifiedUser | None:
    user = getattr(getattr(request, "state", None), "user", None)
    return user if isinstance(user, VerifiedUser) else None


def require_user(request: Request) -> VerifiedUser:
    user = current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_admin(request: Request) -> VerifiedUser:
    user = require_user(request)
    if not is_admin(user.role):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def require_super_admin(request: Request) -> VerifiedUser:
    user = require_user(request)
    if not is_super_admin(user.role):
        raise HTTPException(status_code=403, detail="Super admin access required")
    return user
