from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import new_id, now_iso, query_all, set_fields, strip_internal, type_pk
from .users_repo import normalize_email

CONTACT_STATUSES = ("pending", "in_progress", "resolved", "closed")
CONTACT_PRIORITIES = ("low", "medium", "high")


def contact_key(contact_id: str) -> dict[str, str]:
    return {"pk": f"CONTACT#{contact_id}", "sk": "PROFILE"}


def normalize_contact_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="contactId")


def create_contact(*, name: str, email: str, subject: str, message: str) -> dict[str, Any]:
    contact_id = new_id("contact")
    now = now_iso()
    em = normalize_email(email)
    item = {
        **contact_key(contact_id),
        "entityType": "Contact",
        "contactId": contact_id,
        "name": name,
        "email": em,
        "subject": subject,
        "message": message,
        "status": "pending",
        "priority": "medium",
        "assignedTo": None,
        "notes": None,
        "createdAt": now,
        "updatedAt": now,
        "gsi1pk": type_pk("CONTACT"),
        "gsi1sk": f"{now}#{contact_id}",
        "gsi2pk": f"CONTACT_EMAIL#{em}",
        "gsi2sk": f"{now}#{contact_id}",
    }
    get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_contact(contact_id: str) -> dict[str, Any] | None:
    return get_main_table().get_item(key=contact_key(str(contact_id or "").strip()))


def list_contacts() -> list[dict[str, Any]]:
    """Newest first."""
    return query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk("CONTACT")),
        scan_index_forward=False,
    )


def list_contacts_by_email(email: str) -> list[dict[str, Any]]:
    return query_all(
        get_main_table(),
        index_name="GSI2",
        key_condition_expression=Key("gsi2pk").eq(f"CONTACT_EMAIL#{normalize_email(email)}"),
        scan_index_forward=False,
    )


def update_contact(contact_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
    allowed = {"status", "priority", "assignedTo", "notes"}
    updates = {k: v for k, v in (patch or {}).items() if k in allowed}
    return set_fields(get_main_table(), key=contact_key(contact_id), updates=updates)


def delete_contact(contact_id: str) -> None:
    get_main_table().delete_item(key=contact_key(contact_id))
