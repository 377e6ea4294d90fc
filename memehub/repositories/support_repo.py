from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import new_id, now_iso, query_all, set_fields, strip_internal, type_pk

SUPPORT_CATEGORIES = ("technical", "billing", "feature_request", "bug_report", "general")
SUPPORT_STATUSES = ("open", "in_progress", "resolved", "closed")
SUPPORT_PRIORITIES = ("low", "medium", "high", "urgent")


def support_key(support_id: str) -> dict[str, str]:
    return {"pk": f"SUPPORT#{support_id}", "sk": "PROFILE"}


def normalize_support_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="supportId")


def create_ticket(
    *,
    user_id: str,
    subject: str,
    description: str,
    category: str = "general",
    attachments: list[str] | None = None,
) -> dict[str, Any]:
    support_id = new_id("support")
    now = now_iso()
    item = {
        **support_key(support_id),
        "entityType": "Support",
        "supportId": support_id,
        "userId": user_id,
        "subject": subject,
        "description": description,
        "category": category,
        "status": "open",
        "priority": "medium",
        "assignedTo": None,
        "attachments": list(attachments or []),
        "notes": None,
        "createdAt": now,
        "updatedAt": now,
        "gsi1pk": type_pk("SUPPORT"),
        "gsi1sk": f"{now}#{support_id}",
        "gsi2pk": f"SUPPORT_USER#{user_id}",
        "gsi2sk": f"{now}#{support_id}",
    }
    get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_ticket(support_id: str) -> dict[str, Any] | None:
    return get_main_table().get_item(key=support_key(str(support_id or "").strip()))


def list_tickets() -> list[dict[str, Any]]:
    """Newest first."""
    return query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk("SUPPORT")),
        scan_index_forward=False,
    )


def list_tickets_for_user(user_id: str) -> list[dict[str, Any]]:
    return query_all(
        get_main_table(),
        index_name="GSI2",
        key_condition_expression=Key("gsi2pk").eq(f"SUPPORT_USER#{user_id}"),
        scan_index_forward=False,
    )


def update_ticket(support_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
    allowed = {"status", "priority", "assignedTo", "notes", "category"}
    updates = {k: v for k, v in (patch or {}).items() if k in allowed}
    return set_fields(get_main_table(), key=support_key(support_id), updates=updates)


def delete_ticket(support_id: str) -> None:
    get_main_table().delete_item(key=support_key(support_id))
