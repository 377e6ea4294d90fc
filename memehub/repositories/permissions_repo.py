from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import claim_marker, new_id, now_iso, query_all, set_fields, strip_internal, type_pk


class PermissionTakenError(Exception):
    pass


def permission_key(permission_id: str) -> dict[str, str]:
    return {"pk": f"PERMISSION#{permission_id}", "sk": "PROFILE"}


def permission_name_key(name: str) -> dict[str, str]:
    return {"pk": f"PERMISSION_NAME#{str(name or '').strip().lower()}", "sk": "PERMISSION"}


def permission_slug_key(slug: str) -> dict[str, str]:
    return {"pk": f"PERMISSION_SLUG#{str(slug or '').strip().lower()}", "sk": "PERMISSION"}


def normalize_permission_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="permissionId")


def create_permission(*, name: str, slug: str, description: str = "") -> dict[str, Any]:
    permission_id = new_id("perm")
    t = get_main_table()
    if not claim_marker(t, permission_name_key(name), owner_id=permission_id):
        raise PermissionTakenError("Permission name already exists")
    if not claim_marker(t, permission_slug_key(slug), owner_id=permission_id):
        t.delete_item(key=permission_name_key(name))
        raise PermissionTakenError("Permission slug already exists")

    now = now_iso()
    item = {
        **permission_key(permission_id),
        "entityType": "Permission",
        "permissionId": permission_id,
        "name": name,
        "slug": slug,
        "description": description,
        "createdAt": now,
        "updatedAt": now,
        "gsi1pk": type_pk("PERMISSION"),
        "gsi1sk": f"{slug.lower()}#{permission_id}",
    }
    t.put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_permission(permission_id: str) -> dict[str, Any] | None:
    return get_main_table().get_item(key=permission_key(str(permission_id or "").strip()))


def get_permission_by_slug(slug: str) -> dict[str, Any] | None:
    marker = get_main_table().get_item(key=permission_slug_key(slug))
    if not marker:
        return None
    return get_permission(str(marker.get("ownerId") or ""))


def list_permissions() -> list[dict[str, Any]]:
    """Sorted by slug."""
    return query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk("PERMISSION")),
        scan_index_forward=True,
    )


def update_permission(
    permission_id: str,
    *,
    name: str | None,
    slug: str | None,
    description: str | None,
) -> dict[str, Any] | None:
    existing = get_permission(permission_id)
    if not existing:
        return None

    t = get_main_table()
    updates: dict[str, Any] = {}

    if name and name.strip().lower() != str(existing.get("name") or "").lower():
        if not claim_marker(t, permission_name_key(name), owner_id=permission_id):
            raise PermissionTakenError("Permission name already exists")
        t.delete_item(key=permission_name_key(str(existing.get("name") or "")))
        updates["name"] = name

    if slug and slug.strip().lower() != str(existing.get("slug") or "").lower():
        if not claim_marker(t, permission_slug_key(slug), owner_id=permission_id):
            raise PermissionTakenError("Permission slug already exists")
        t.delete_item(key=permission_slug_key(str(existing.get("slug") or "")))
        updates["slug"] = slug
        updates["gsi1sk"] = f"{slug.lower()}#{permission_id}"

    if description is not None:
        updates["description"] = description

    if not updates:
        return existing
    return set_fields(t, key=permission_key(permission_id), updates=updates)


def delete_permission(permission_id: str) -> bool:
    existing = get_permission(permission_id)
    if not existing:
        return False
    t = get_main_table()
    t.delete_item(key=permission_name_key(str(existing.get("name") or "")))
    t.delete_item(key=permission_slug_key(str(existing.get("slug") or "")))
    t.delete_item(key=permission_key(permission_id))
    return True
