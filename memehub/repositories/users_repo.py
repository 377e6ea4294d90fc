from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import claim_marker, new_id, now_iso, query_all, set_fields, strip_internal, type_pk


class UserConflictError(Exception):
    pass


def user_key(user_id: str) -> dict[str, str]:
    return {"pk": f"USER#{user_id}", "sk": "PROFILE"}


def email_key(email: str) -> dict[str, str]:
    return {"pk": f"USER_EMAIL#{normalize_email(email)}", "sk": "USER"}


def username_key(username: str) -> dict[str, str]:
    return {"pk": f"USERNAME#{str(username or '').strip().lower()}", "sk": "USER"}


def normalize_email(email: Any) -> str:
    return str(email or "").strip().lower()


def normalize_user_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    out = strip_internal(item, id_field="userId")
    if out is None:
        return None
    out.pop("passwordHash", None)
    return out


def public_profile(item: dict[str, Any] | None) -> dict[str, Any] | None:
    """Fields other users may see next to a meme or review."""
    if not item:
        return None
    return {
        "_id": item.get("userId"),
        "username": item.get("username"),
        "profileImage": item.get("profileImage"),
        "isPublic": bool(item.get("isPublic")),
    }


def _claim(key: dict[str, str], user_id: str, message: str) -> None:
    if not claim_marker(get_main_table(), key, owner_id=user_id):
        raise UserConflictError(message)


def create_user(
    *,
    username: str,
    email: str,
    password_hash: str,
    role: str = "user",
    permissions: list[str] | None = None,
    profile_image: str | None = None,
    bio: str | None = None,
    is_public: bool = False,
) -> dict[str, Any]:
    user_id = new_id("usr")
    now = now_iso()
    em = normalize_email(email)
    name = str(username or "").strip()

    _claim(email_key(em), user_id, "Email already exists")
    try:
        _claim(username_key(name), user_id, "Username already taken")
    except UserConflictError:
        get_main_table().delete_item(key=email_key(em))
        raise

    item = {
        **user_key(user_id),
        "entityType": "User",
        "userId": user_id,
        "username": name,
        "email": em,
        "passwordHash": password_hash,
        "role": role,
        "permissions": list(permissions or []),
        "profileImage": profile_image,
        "bio": bio,
        "isPublic": bool(is_public),
        "createdAt": now,
        "updatedAt": now,
        "gsi1pk": type_pk("USER"),
        "gsi1sk": f"{now}#{user_id}",
    }
    get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_user(user_id: str) -> dict[str, Any] | None:
    uid = str(user_id or "").strip()
    if not uid:
        return None
    return get_main_table().get_item(key=user_key(uid))


def _get_by_marker(key: dict[str, str]) -> dict[str, Any] | None:
    marker = get_main_table().get_item(key=key)
    if not marker or not marker.get("ownerId"):
        return None
    return get_user(str(marker["ownerId"]))


def get_user_by_email(email: str) -> dict[str, Any] | None:
    if not normalize_email(email):
        return None
    return _get_by_marker(email_key(email))


def get_user_by_username(username: str) -> dict[str, Any] | None:
    if not str(username or "").strip():
        return None
    return _get_by_marker(username_key(username))


def list_users() -> list[dict[str, Any]]:
    return query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk("USER")),
        scan_index_forward=False,
    )


def list_public_users() -> list[dict[str, Any]]:
    return [u for u in list_users() if u.get("isPublic")]


def get_users_by_ids(user_ids: list[str]) -> dict[str, dict[str, Any]]:
    out: dict[str, dict[str, Any]] = {}
    for uid in {str(u) for u in user_ids if u}:
        u = get_user(uid)
        if u:
            out[uid] = u
    return out


def update_user(user_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
    """
    Apply a patch to a user. Username/email changes move the uniqueness
    markers: new markers are claimed first, the item is written, and only
    then are the old markers dropped. A taken value raises UserConflictError
    with nothing changed.
    """
    existing = get_user(user_id)
    if not existing:
        return None

    updates = dict(patch or {})
    moves: list[tuple[dict[str, str], dict[str, str], str]] = []

    new_email = normalize_email(updates.pop("email", None))
    if new_email and new_email != existing.get("email"):
        updates["email"] = new_email
        moves.append((email_key(new_email), email_key(str(existing.get("email") or "")), "Email already exists"))

    new_name = str(updates.pop("username", None) or "").strip()
    if new_name:
        updates["username"] = new_name
        old_name = str(existing.get("username") or "")
        if new_name.lower() != old_name.lower():
            moves.append((username_key(new_name), username_key(old_name), "Username already taken"))

    if not updates:
        return existing

    t = get_main_table()
    claimed: list[dict[str, str]] = []
    try:
        for new_key, _, message in moves:
            _claim(new_key, user_id, message)
            claimed.append(new_key)
        updated = set_fields(t, key=user_key(user_id), updates=updates)
    except Exception:
        for key in claimed:
            t.delete_item(key=key)
        raise

    for _, old_key, _ in moves:
        t.delete_item(key=old_key)
    return updated


def delete_user(user_id: str) -> bool:
    existing = get_user(user_id)
    if not existing:
        return False
    t = get_main_table()
    t.delete_item(key=email_key(str(existing.get("email") or "")))
    t.delete_item(key=username_key(str(existing.get("username") or "")))
    t.delete_item(key=user_key(user_id))
    return True
