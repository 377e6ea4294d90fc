from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import claim_marker, new_id, now_iso, query_all, set_fields, strip_internal, type_pk


class RoleNameTakenError(Exception):
    pass


def role_key(role_id: str) -> dict[str, str]:
    return {"pk": f"ROLE#{role_id}", "sk": "PROFILE"}


def role_name_key(name: str) -> dict[str, str]:
    return {"pk": f"ROLE_NAME#{str(name or '').strip().lower()}", "sk": "ROLE"}


def normalize_role_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="roleId")


def create_role(*, name: str, permissions: list[str]) -> dict[str, Any]:
    role_id = new_id("role")
    t = get_main_table()
    if not claim_marker(t, role_name_key(name), owner_id=role_id):
        raise RoleNameTakenError("Role already exists")

    now = now_iso()
    item = {
        **role_key(role_id),
        "entityType": "Role",
        "roleId": role_id,
        "name": name,
        "permissions": list(permissions or []),
        "createdAt": now,
        "updatedAt": now,
        "gsi1pk": type_pk("ROLE"),
        "gsi1sk": f"{str(name).lower()}#{role_id}",
    }
    t.put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_role(role_id: str) -> dict[str, Any] | None:
    return get_main_table().get_item(key=role_key(str(role_id or "").strip()))


def get_role_by_name(name: str) -> dict[str, Any] | None:
    marker = get_main_table().get_item(key=role_name_key(name))
    if not marker:
        return None
    return get_role(str(marker.get("ownerId") or ""))


def list_roles() -> list[dict[str, Any]]:
    """Sorted by name."""
    return query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk("ROLE")),
        scan_index_forward=True,
    )


def update_role(role_id: str, *, name: str | None, permissions: list[str] | None) -> dict[str, Any] | None:
    existing = get_role(role_id)
    if not existing:
        return None

    t = get_main_table()
    updates: dict[str, Any] = {}
    if name and name.strip().lower() != str(existing.get("name") or "").lower():
        if not claim_marker(t, role_name_key(name), owner_id=role_id):
            raise RoleNameTakenError("Role already exists")
        t.delete_item(key=role_name_key(str(existing.get("name") or "")))
        updates["name"] = name
        updates["gsi1sk"] = f"{name.lower()}#{role_id}"
    elif name:
        updates["name"] = name
    if permissions is not None:
        updates["permissions"] = list(permissions)

    if not updates:
        return existing
    return set_fields(t, key=role_key(role_id), updates=updates)


def delete_role(role_id: str) -> bool:
    existing = get_role(role_id)
    if not existing:
        return False
    t = get_main_table()
    t.delete_item(key=role_name_key(str(existing.get("name") or "")))
    t.delete_item(key=role_key(role_id))
    return True
