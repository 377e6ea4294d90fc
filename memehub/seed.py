"""
Seed default permissions, roles, demo accounts and platform settings.

Safe to run repeatedly: anything that already exists is left untouched.

Usage:
    python -m memehub.seed [--skip-users]
"""

from __future__ import annotations

import argparse
from typing import Any

from .auth.passwords import hash_password
from .auth.roles import ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_USER
from .observability.logging import configure_logging, get_logger
from .repositories import permissions_repo, platform_settings_repo, roles_repo, users_repo

log = get_logger("seed")

DEFAULT_PERMISSIONS = [
    {"name": "Create Meme", "slug": "create_meme", "description": "Can create memes"},
    {"name": "Edit Meme", "slug": "edit_meme", "description": "Can edit memes"},
    {"name": "Delete Meme", "slug": "delete_meme", "description": "Can delete memes"},
    {"name": "View Users", "slug": "view_users", "description": "Can view users"},
    {"name": "Manage Roles", "slug": "manage_roles", "description": "Can manage roles"},
]

ALL_SLUGS = [p["slug"] for p in DEFAULT_PERMISSIONS]

DEFAULT_ROLES = {
    ROLE_ADMIN: ALL_SLUGS,
    ROLE_USER: ["create_meme"],
}

DEFAULT_USERS = [
    {"username": "admin", "email": "admin@example.com", "password": "admin123", "role": ROLE_ADMIN},
    {"username": "user", "email": "user@example.com", "password": "user123", "role": ROLE_USER},
    {
        "username": "superadmin",
        "email": "superadmin@example.com",
        "password": "superadmin123",
        "role": ROLE_SUPER_ADMIN,
    },
]


def seed_permissions() -> int:
    created = 0
    for p in DEFAULT_PERMISSIONS:
        if permissions_repo.get_permission_by_slug(p["slug"]):
            continue
        try:
            permissions_repo.create_permission(name=p["name"], slug=p["slug"], description=p["description"])
        except permissions_repo.PermissionTakenError:
            continue
        created += 1
    return created


def seed_roles() -> int:
    created = 0
    for name, perms in DEFAULT_ROLES.items():
        if roles_repo.get_role_by_name(name):
            continue
        try:
            roles_repo.create_role(name=name, permissions=list(perms))
        except roles_repo.RoleNameTakenError:
            continue
        created += 1
    return created


def _permissions_for(role: str) -> list[str]:
    if role == ROLE_SUPER_ADMIN:
        return list(ALL_SLUGS)
    found = roles_repo.get_role_by_name(role)
    if found:
        return list(found.get("permissions") or [])
    return list(DEFAULT_ROLES.get(role, []))


def seed_users() -> int:
    created = 0
    for u in DEFAULT_USERS:
        if users_repo.get_user_by_email(u["email"]):
            continue
        try:
            users_repo.create_user(
                username=u["username"],
                email=u["email"],
                password_hash=hash_password(u["password"]),
                role=u["role"],
                permissions=_permissions_for(u["role"]),
            )
        except users_repo.UserConflictError:
            continue
        created += 1
    return created


def run(*, skip_users: bool = False) -> dict[str, Any]:
    stats: dict[str, Any] = {
        "permissions": seed_permissions(),
        "roles": seed_roles(),
        "users": 0 if skip_users else seed_users(),
    }
    stats["settings"] = platform_settings_repo.normalize_settings_for_api(
        platform_settings_repo.get_or_create_settings()
    )
    return stats


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed MemeHub defaults")
    parser.add_argument("--skip-users", action="store_true", help="Do not create the demo accounts")
    args = parser.parse_args(argv)

    configure_logging(level="INFO")
    stats = run(skip_users=args.skip_users)
    log.info("seed_completed", **stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
